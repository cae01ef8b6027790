from __future__ import annotations

from shamscan.scanner import compile_rules, scan_text


def _behavioral(catalog, text: str) -> list[tuple[str, int]]:
    matches, _, _ = scan_text(text, "src/api.ts", compile_rules(catalog, ["behavioral"]))
    return [(m.rule_id, m.line) for m in matches]


def test_catch_returning_success_is_swallowed(catalog) -> None:
    source = """\
export async function saveUser(user) {
  try {
    await db.insert(user);
  } catch (err) {
    console.error(err);
    return { success: true };
  }
  return { success: true };
}
"""
    assert _behavioral(catalog, source) == [("beh.swallowed-error", 4)]


def test_rethrowing_catch_is_not_swallowed(catalog) -> None:
    source = """\
export async function saveUser(user) {
  try {
    await db.insert(user);
  } catch (err) {
    logger.warn(err);
    throw err;
  }
  return { success: true };
}
"""
    assert _behavioral(catalog, source) == []


def test_catch_returning_failure_is_not_swallowed(catalog) -> None:
    source = """\
export function parse(text) {
  try {
    return JSON.parse(text);
  } catch (err) {
    return { success: false, error: String(err) };
  }
}
"""
    assert _behavioral(catalog, source) == []


def test_promise_catch_handler_returning_success(catalog) -> None:
    source = "export function loadConfig() {\n  return readConfig().catch(() => ({ ok: true }));\n}\n"
    assert _behavioral(catalog, source) == [("beh.swallowed-error", 2)]


def test_express_handler_answering_200_from_catch(catalog) -> None:
    source = """\
app.post("/orders", async (req, res) => {
  try {
    await createOrder(req.body);
  } catch (e) {
    res.status(200).json({ received: true });
  }
});
"""
    assert _behavioral(catalog, source) == [("beh.swallowed-error", 4)]


def test_validator_without_failing_path(catalog) -> None:
    source = """\
export function validateEmail(email) {
  console.log("validating", email);
  return true;
}
"""
    assert _behavioral(catalog, source) == [("beh.unconditional-success", 1)]


def test_validator_with_failing_path(catalog) -> None:
    source = """\
export function validateEmail(email) {
  if (!email.includes("@")) {
    return false;
  }
  return true;
}
"""
    assert _behavioral(catalog, source) == []


def test_predicate_falling_through_is_conditional(catalog) -> None:
    source = 'function isAdmin(user) {\n  if (user.role === "admin") {\n    return true;\n  }\n}\n'
    assert _behavioral(catalog, source) == []


def test_throwing_validator_is_not_flagged(catalog) -> None:
    source = """\
export function assertOwner(doc, user) {
  if (doc.owner !== user.id) throw new Error("forbidden");
  return true;
}
"""
    assert _behavioral(catalog, source) == []
