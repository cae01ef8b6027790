"""TypeScript compiler diagnostic classification table.

Quick fixes are local: a missing import, an unused variable, a null check.
Design issues point at types that disagree with each other and usually need
a change to an interface or data flow rather than to a single line.
"""

from __future__ import annotations

from .schema import DiagnosticKind

QUICK_FIX_CODES = (
    "TS1005",  # 'x' expected
    "TS1128",  # declaration or statement expected
    "TS2304",  # cannot find name
    "TS2305",  # module has no exported member
    "TS2307",  # cannot find module
    "TS2531",  # object is possibly 'null'
    "TS2532",  # object is possibly 'undefined'
    "TS2533",  # object is possibly 'null' or 'undefined'
    "TS2551",  # property does not exist, did you mean
    "TS2552",  # cannot find name, did you mean
    "TS2554",  # expected N arguments
    "TS2555",  # expected at least N arguments
    "TS2564",  # property has no initializer
    "TS2614",  # module has no exported member (default import)
    "TS6133",  # declared but never read
    "TS6138",  # property declared but never read
    "TS6192",  # all imports unused
    "TS6196",  # declared but never used
    "TS7005",  # variable implicitly has an 'any' type
    "TS7006",  # parameter implicitly has an 'any' type
    "TS7016",  # no declaration file for module
    "TS7030",  # not all code paths return a value
    "TS7031",  # binding element implicitly has an 'any' type
    "TS18046",  # value is of type 'unknown'
    "TS18047",  # value is possibly 'null'
    "TS18048",  # value is possibly 'undefined'
)

DESIGN_ISSUE_CODES = (
    "TS2322",  # type is not assignable
    "TS2339",  # property does not exist on type
    "TS2344",  # type does not satisfy the constraint
    "TS2345",  # argument type is not assignable
    "TS2349",  # expression is not callable
    "TS2352",  # conversion may be a mistake
    "TS2355",  # function must return a value
    "TS2366",  # function lacks ending return statement
    "TS2367",  # comparison has no overlap
    "TS2416",  # property not assignable to the same property in base type
    "TS2420",  # class incorrectly implements interface
    "TS2430",  # interface incorrectly extends interface
    "TS2488",  # type must have a Symbol.iterator
    "TS2589",  # type instantiation is excessively deep
    "TS2590",  # union type is too complex to represent
    "TS2739",  # type is missing properties
    "TS2740",  # type is missing properties (and more)
    "TS2741",  # property is missing in type
    "TS2769",  # no overload matches this call
    "TS4114",  # member must have an 'override' modifier
)


def default_diagnostic_table() -> dict[str, DiagnosticKind]:
    table: dict[str, DiagnosticKind] = {code: "quick-fix" for code in QUICK_FIX_CODES}
    table.update({code: "design-issue" for code in DESIGN_ISSUE_CODES})
    return table
