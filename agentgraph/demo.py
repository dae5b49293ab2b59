"""
Runnable example: a think -> answer -> review graph.

  agentgraph-demo "Why is the sky blue?"
  agentgraph-demo --tools "What is in the current directory?"

The review node may route back to itself ("needs another pass") until the
executor's iteration cap stops it, or on to "final" which ends the run.
Output is streamed to stdout as it arrives.
"""

import asyncio
import logging
import sys

import typer
from rich.console import Console

from agentgraph.shared.config import AppConfig, load_config
from agentgraph.shared.errors import AgentGraphError
from agentgraph.shared.logging_config import configure_logging
from agentgraph.shared.models import AgentState, HistoryMessage, StreamChunk
from agentgraph.orchestrator.engine import GraphExecutor
from agentgraph.orchestrator.graph import Graph, GraphBuilder
from agentgraph.orchestrator.llm_client import create_llm_client
from agentgraph.orchestrator.router import LLMGraphRouter
from agentgraph.nodes import CompletionNode, DeepThinkNode, NativeToolGroupNode, NowadaysNode
from agentgraph.tools import create_builtin_tools

logger = logging.getLogger(__name__)

console = Console()
app = typer.Typer(
    help="Run the think -> answer -> review demo graph.",
    add_completion=False,
)

ANSWER_PROMPT = "Answer the user's question clearly, using the analysis and any tool results in the context."
REVIEW_PROMPT = (
    "Review the latest answer for correctness and completeness. "
    "Reply with an improved answer if needed, otherwise repeat it unchanged."
)


def build_demo_graph(config: AppConfig, with_tools: bool = False) -> Graph:
    llm = create_llm_client(config)

    builder = GraphBuilder()
    builder.add_node("env", NowadaysNode("env", tz=config.timezone, language=config.language))
    builder.add_node("think", DeepThinkNode("think", llm=llm.clone()))
    builder.add_node("answer", CompletionNode("answer", llm=llm.clone(), system_prompt=ANSWER_PROMPT))
    builder.add_node("review", CompletionNode("review", llm=llm.clone(), system_prompt=REVIEW_PROMPT))
    builder.add_node("final", CompletionNode(
        "final", llm=llm.clone(), system_prompt="Give the final answer to the user concisely.",
    ))

    builder.add_edge("env", "think")
    if with_tools:
        builder.add_node("tools", NativeToolGroupNode(
            "tools", llm=llm.clone(), tools=create_builtin_tools(config.tools),
            max_tool_rounds=config.engine.max_tool_rounds,
        ))
        builder.add_routes("think", [
            ("tools", "use tools", "The question needs files, shell commands or the web"),
            ("answer", "answer directly"),
        ])
        builder.add_edge("tools", "answer")
    else:
        builder.add_edge("think", "answer")

    builder.add_edge("answer", "review")
    builder.add_routes("review", [
        ("review", "needs another pass", "The answer still has errors or gaps"),
        ("final", "good enough"),
    ])
    return builder.set_entry_point("env").set_end_points("final").build()


def _print_chunk(chunk: StreamChunk) -> None:
    sys.stdout.write(chunk.content)
    sys.stdout.flush()


async def run(question: str, config: AppConfig, with_tools: bool = False) -> int:
    graph = build_demo_graph(config, with_tools=with_tools)
    router = LLMGraphRouter(graph, llm=create_llm_client(config))
    executor = GraphExecutor(graph, router, max_iterations=config.engine.max_iterations)

    state = AgentState(history=[HistoryMessage(role="user", content=question)], send_chunk=_print_chunk)
    handle = executor.execute("env", state)
    result = await handle.result

    console.print()
    console.print(
        f"visited: {' -> '.join(result.visited_keys)} ({result.iterations} iterations)",
        highlight=False,
    )
    return 0


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask the agent."),
    tools: bool = typer.Option(False, "--tools", help="Let the agent use file, exec and web tools."),
) -> None:
    """Ask one question and stream the graph's output."""
    config = load_config()
    configure_logging(config)
    try:
        code = asyncio.run(run(question, config, with_tools=tools))
    except AgentGraphError as e:
        console.print(f"[bold red]Execution failed:[/bold red] {e}")
        raise typer.Exit(code=1)
    raise typer.Exit(code=code)


if __name__ == "__main__":
    app()
