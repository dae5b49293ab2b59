"""
Shared prompt templates - single source of truth.

The router and every node variant import their base templates from here and
compose them with the live conversation (context transcript, tool schemas,
skill listings).
"""

import json

# ─── Router ───────────────────────────────────────────────────

ROUTER_SYSTEM_PROMPT = """## Role
You are a workflow routing expert. Based on the conversation state and the
available routes, decide which node the agent should execute next.

## Current state

**Current node**: {current_node}

**Execution context**:
{context_summary}

**History summary**:
{history_summary}

## Available routes
{routes}

## Decision guide
1. Understand the user's intent from the execution context.
2. Check each route's condition and decide whether it is satisfied.
3. Prefer a route whose condition is satisfied. If several are, pick the
   one that best matches the user's current intent. If none is, pick the
   route marked "unconditional". If there is no such route, pick the first.

## Output
Reply with the target node key only. No explanation, punctuation or formatting.

For example, to move to "analyze_topic" reply exactly:
analyze_topic"""

ROUTER_USER_INSTRUCTION = "Using the information above, choose the next node to execute."

HISTORY_COMPRESSION_PROMPT = """Compress the following conversation history into a concise summary.
Keep the key facts (user intent, completed operations, current status). Use at most {max_chars} characters.

=== Conversation history ===
{history}
===

Return the summary directly, with no prefix or explanation."""

NO_CONTEXT = "[no context]"
NO_HISTORY = "[no history]"
HISTORY_SUMMARY_PREFIX = "[history summary]"


# ─── Decide-then-call tool nodes ──────────────────────────────

SHOULD_CALL_INSTRUCTIONS = """Decide whether a tool call is needed. Reply with JSON only:
```json
{
    "shouldCall": true or false,
    "reason": "why the tool should or should not be called"
}
```"""

GROUP_SHOULD_CALL_INSTRUCTIONS = """Decide whether a tool call is needed and, if so, pick the most suitable tool. Reply with JSON only:
```json
{
    "shouldCall": true or false,
    "reason": "why a tool should or should not be called",
    "selectedTool": "tool name"
}
```"""

TOOL_CALL_INSTRUCTIONS = """Generate the tool call arguments. Reply with JSON only:
```json
{
    "toolName": "%s",
    "arguments": {}
}
```"""


# ─── Native tool calling / ReAct ──────────────────────────────

REACT_THINK_PROMPT = """You are an assistant that analyses the user's request and decides whether tools are needed to complete it.

## Available tools
```json
%s
```

## Decision rules
1. Analyse the user's question and needs carefully.
2. Decide whether one of the tools can help answer or solve it.
3. If several tools apply, choose the most suitable one.
4. If no tool is needed, reply with an empty string.

## Output
- **Tools needed**: say which tools are needed and why.
- **No tools needed**: reply with an empty string.

## Notes
1. You **must** reason from the user's question together with the current context.
2. If tool results already exist, use them to decide whether to keep calling tools
   (for example, if a script failed, adjust it from the error or report the error to the user)."""

TOOL_GROUP_PROMPT = """You are a tool assistant. Choose the right tool for the user's request.

## Available tools
%s

## Rules
1. Read the request carefully and choose the most suitable tool.
2. If no tool call is needed, reply with an empty string.
3. Make sure the arguments are correct.
4. If the latest thought names a specific tool call, follow it exactly and check its arguments."""


# ─── Deep thinking ────────────────────────────────────────────

DEEP_THINK_PROMPT = """## Role
You are a deep-thinking assistant. Analyse the problem thoroughly and rigorously.

## Requirements
1. Understand the essence and the deeper meaning of the question.
2. Think from several angles: background, key factors, consequences, alternatives.
3. Show a structured chain of reasoning.
4. Consider counterexamples and edge cases before concluding.
5. Stay objective.
6. Do not answer the question directly; only analyse and summarise it.

## Output
Write your thoughts directly, without code fences."""

DEEP_THINK_RESULT_PREFIX = "[deep thinking result]"


# ─── Skills ───────────────────────────────────────────────────

SKILL_USAGE_RULES = """## Skill usage rules
1. Skills are folders of instructions, references and scripts for specialised tasks.
2. When a request matches a skill's description, read its SKILL.md before acting.
3. Read reference files only when the instructions point to them.
4. Run bundled scripts instead of rewriting them.
5. If no skill matches, continue without one."""


# ─── Environment ──────────────────────────────────────────────

NOWADAYS_TEMPLATE = """Current time: {now}
Current system: {platform}
Conversation language: {language}
Replies **must** use the conversation language. Shell commands and scripts **must** use syntax suitable for the current system."""


def render_transcript(messages: list) -> str:
    """`[role] content` lines, using the message title when it has one."""
    lines = []
    for message in messages:
        role = getattr(message, "title", None) or message.role
        lines.append(f"[{role}] {message.content}")
    return "\n".join(lines)


def render_tool_schemas(tools: list) -> str:
    return json.dumps([t.info for t in tools], indent=2, ensure_ascii=False)


def render_tool_list(tools: list) -> str:
    return "\n".join(f"- {t.name}: {t.description}" for t in tools)


def build_state_messages(state, prompt: str) -> list[dict]:
    """Prior history (minus the latest user turn) plus one system message
    that restates the user's question, the context transcript and `prompt`."""
    user_message = None
    for message in reversed(state.history):
        if message.role == "user":
            user_message = message
            break
    history = [m.to_dict() for m in state.history if m is not user_message]
    question = user_message.content if user_message else ""
    system = (
        f"The user's question is: {question}\n"
        "-------------------------------------------\n"
        f"The current conversation context is:\n{render_transcript(state.context)}\n"
        "-------------------------------------------\n"
        "You **must** base all further reasoning and decisions on the user's question and the current context.\n\n"
        f"{prompt}"
    )
    return history + [{"role": "system", "content": system}]
