"""Built-in rule definitions and the default catalog."""

from __future__ import annotations

from .diagnostic_codes import default_diagnostic_table
from .schema import RuleCatalog, RuleDef

CATALOG_VERSION = "2026.10"


# =============================================================================
# Lexical tier: naming conventions and markers, matched line by line
# =============================================================================

LEX_NOT_IMPLEMENTED = RuleDef(
    id="lex.not-implemented",
    name="Not-implemented throw",
    tier="lexical",
    category="not implemented",
    severity="critical",
    pattern=r"throw\s+new\s+\w*Error\s*\(\s*['\"`][^'\"`]*\bnot\s+(?:yet\s+)?implemented",
    flags="i",
    remediation="Implement the operation or remove the entry point until it exists.",
    description="A code path that unconditionally throws a 'not implemented' error.",
)

LEX_PLACEHOLDER_NAME = RuleDef(
    id="lex.placeholder-name",
    name="Placeholder identifier",
    tier="lexical",
    category="placeholder naming",
    severity="warning",
    pattern=r"\b(?:mock|fake|dummy|stub|placeholder)[A-Z_]\w*|\b[a-z]\w*?(?:Mock|Fake|Stub|Dummy|Placeholder)\w*|\b(?:MOCK|FAKE|DUMMY|STUB)_\w+",
    target="code",
    remediation="Replace the placeholder with the real data source or move it into test fixtures.",
    description="Identifiers named mock/fake/dummy/stub/placeholder in production code.",
)

LEX_SIMULATION_COMMENT = RuleDef(
    id="lex.simulation-comment",
    name="Simulation comment",
    tier="lexical",
    category="simulation marker",
    severity="warning",
    pattern=(
        r"(?://|/\*|^\s*\*).*\b(?:simulat(?:e|ed|es|ing|ion)|for now|temporar(?:y|ily)"
        r"|in a real (?:app|application|implementation|system)|would normally"
        r"|replace (?:this )?with (?:a |the )?real|hard-?coded for)\b"
    ),
    flags="i",
    remediation="Confirm the simulated behavior was replaced by the real implementation.",
    description="Comments admitting that the surrounding code simulates real behavior.",
)

LEX_TODO_MARKER = RuleDef(
    id="lex.todo-marker",
    name="Unfinished-work marker",
    tier="lexical",
    category="unfinished work",
    severity="info",
    pattern=r"\b(?:TODO|FIXME|HACK|XXX)\b",
    remediation="Resolve the marker or track it in the issue tracker.",
)

LEX_SAMPLE_DATA = RuleDef(
    id="lex.sample-data",
    name="Sample data literal",
    tier="lexical",
    category="sample data",
    severity="info",
    pattern=r"lorem ipsum|\b(?:john|jane)\.?doe\b|@example\.(?:com|org|net)\b|\bfoo@bar\b|\b555-\d{4}\b",
    flags="i",
    remediation="Load the value from the real data source instead of a sample literal.",
)

LEX_RANDOM_DATA = RuleDef(
    id="lex.random-data",
    name="Random data generation",
    tier="lexical",
    category="random data",
    severity="info",
    pattern=r"\bMath\.random\s*\(\s*\)",
    target="code",
    remediation="Check that random values are not standing in for real results.",
)

LEX_TYPE_ANY = RuleDef(
    id="lex.type-any",
    name="Explicit any",
    tier="lexical",
    category="type escape",
    severity="warning",
    pattern=r":\s*any\b|\bas\s+any\b|<any>|\bany\[\]",
    target="code",
    remediation="Replace 'any' with a concrete type or 'unknown' plus narrowing.",
)

LEX_TS_SUPPRESSION = RuleDef(
    id="lex.ts-suppression",
    name="Type check suppression",
    tier="lexical",
    category="suppressed type check",
    severity="warning",
    pattern=r"@ts-(?:ignore|nocheck)\b",
    remediation="Fix the underlying type error, or use @ts-expect-error with a reason.",
)

LEX_DOUBLE_CAST = RuleDef(
    id="lex.double-cast",
    name="Double cast through unknown",
    tier="lexical",
    category="double cast",
    severity="warning",
    pattern=r"\bas\s+unknown\s+as\b",
    target="code",
    remediation="Model the conversion explicitly instead of forcing it through 'unknown'.",
)


# =============================================================================
# Structural tier: function shapes over the masked source
# =============================================================================

STRUCT_EMPTY_BODY = RuleDef(
    id="struct.empty-body",
    name="Empty function body",
    tier="structural",
    category="empty body",
    severity="warning",
    matcher="empty_body",
    remediation="Implement the function or delete it and its callers.",
    description="A named function whose body contains no statements.",
)

STRUCT_IDENTITY = RuleDef(
    id="struct.identity-function",
    name="Identity function",
    tier="structural",
    category="identity function",
    severity="warning",
    matcher="identity",
    remediation="A transform that returns its input unchanged is usually a stub; implement the transform.",
    description="A function that returns its sole parameter unchanged.",
)

STRUCT_CONSTANT_RETURN = RuleDef(
    id="struct.constant-return",
    name="Constant return",
    tier="structural",
    category="constant return",
    severity="warning",
    matcher="constant_return",
    remediation="Compute the result from the inputs instead of returning a fixed literal.",
    description="A function that ignores its parameters and only returns literals.",
)


# =============================================================================
# Semantic tier: idioms that need multi-line context
# =============================================================================

SEM_IN_MEMORY_STORE = RuleDef(
    id="sem.in-memory-store",
    name="Module-scope in-memory store",
    tier="semantic",
    category="in-memory store",
    severity="warning",
    matcher="module_store",
    remediation="Persist the data in a real store; module state is lost on restart and not shared across instances.",
    description="A module-level array/object/Map/Set mutated by functions in a file with no persistence layer.",
)

SEM_CANNED_RESPONSES = RuleDef(
    id="sem.canned-responses",
    name="Canned responses",
    tier="semantic",
    category="canned responses",
    severity="warning",
    matcher="canned_responses",
    remediation="Derive the response from the request instead of cycling through a fixed list.",
    description="A literal array indexed by an incrementing counter.",
)

SEM_SIMULATED_LATENCY = RuleDef(
    id="sem.simulated-latency",
    name="Simulated latency",
    tier="semantic",
    category="simulated latency",
    severity="warning",
    matcher="timer_without_io",
    remediation="Remove the artificial delay and perform the real asynchronous call.",
    description="A timer inside a function that performs no asynchronous I/O.",
)


# =============================================================================
# Behavioral tier: control-flow aware checks
# =============================================================================

BEH_SWALLOWED_ERROR = RuleDef(
    id="beh.swallowed-error",
    name="Swallowed error reported as success",
    tier="behavioral",
    category="swallowed error",
    severity="critical",
    matcher="swallowed_error",
    remediation="Propagate the error or return a failure value the caller can detect.",
    description="A catch block that neither rethrows nor rejects and returns a success-shaped value.",
)

BEH_UNCONDITIONAL_SUCCESS = RuleDef(
    id="beh.unconditional-success",
    name="Unconditional success",
    tier="behavioral",
    category="unconditional success",
    severity="critical",
    matcher="unconditional_success",
    remediation="Add the failing path: a validator that cannot fail does not validate.",
    description="A validator-named function that reads its input but has no failing return path.",
)


BUILT_IN_RULES: tuple[RuleDef, ...] = (
    LEX_NOT_IMPLEMENTED,
    LEX_PLACEHOLDER_NAME,
    LEX_SIMULATION_COMMENT,
    LEX_TODO_MARKER,
    LEX_SAMPLE_DATA,
    LEX_RANDOM_DATA,
    LEX_TYPE_ANY,
    LEX_TS_SUPPRESSION,
    LEX_DOUBLE_CAST,
    STRUCT_EMPTY_BODY,
    STRUCT_IDENTITY,
    STRUCT_CONSTANT_RETURN,
    SEM_IN_MEMORY_STORE,
    SEM_CANNED_RESPONSES,
    SEM_SIMULATED_LATENCY,
    BEH_SWALLOWED_ERROR,
    BEH_UNCONDITIONAL_SUCCESS,
)


def default_catalog() -> RuleCatalog:
    """The built-in catalog with the default diagnostic table."""
    return RuleCatalog(
        version=CATALOG_VERSION,
        rules=BUILT_IN_RULES,
        diagnostic_codes=default_diagnostic_table(),
    )
