"""
Named constants - replaces magic numbers and magic strings throughout the codebase.

All tunable limits and sentinels are defined here with descriptive names,
so the router, engine and nodes agree on them.
"""

# ── Routing ──────────────────────────────────────────────────

END = "END"
"""Sentinel returned by the router when execution should stop."""

HISTORY_SUMMARY_MAX_CHARS = 200
"""Guidance cap given to the model when compressing history for routing."""

# ── Execution ────────────────────────────────────────────────

DEFAULT_MAX_ITERATIONS = 10
"""Node turns allowed per execution before the engine stops."""

DEFAULT_REACT_MAX_ITERATIONS = 5
"""Think/act rounds allowed inside one ReAct node turn."""

DEFAULT_MAX_TOOL_ROUNDS = 8
"""Model round-trips allowed inside one native tool node turn."""

# ── Structured replies ──────────────────────────────────────

PARSE_FAILURE_SNIPPET_CHARS = 100
"""Characters of an unparseable reply quoted back in the diagnostic."""

# ── Context messages ────────────────────────────────────────

TOOL_CALLING_FINISHED = "[tool calling finished]"
"""Marker appended once a native tool turn has drained its call queue."""

TOOL_REQUEST_TITLE = "tool request"
TOOL_RESULT_TITLE = "tool result"
THOUGHT_TITLE = "thought"

# ── Skills ───────────────────────────────────────────────────

SKILL_MANIFEST = "SKILL.md"
SKILL_REFERENCES_DIR = "references"
SKILL_SCRIPTS_DIR = "scripts"

# ── Tool output ──────────────────────────────────────────────

MAX_TOOL_RESULT_PREVIEW = 500
"""Maximum characters of a tool result echoed into log lines."""
