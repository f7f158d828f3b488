from __future__ import annotations

import argparse
import asyncio
import logging

from llm_switchboard import (
    AgentOrchestrator,
    AgentStatus,
    InMemoryConversationStore,
    SwitchboardError,
    load_provider_config,
)
from llm_switchboard.factory import create_search_capability
from llm_switchboard.providers import load_search_config

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


def print_status(status: AgentStatus) -> None:
    if status.detail:
        logger.info("status: %s (%s)", status.state, status.detail)
    else:
        logger.info("status: %s", status.state)


async def main(prompt: str, stream: bool) -> None:
    search_config = load_search_config()
    search = create_search_capability(*search_config) if search_config else None

    orchestrator = AgentOrchestrator.from_config(
        load_provider_config(),
        InMemoryConversationStore(),
        search=search,
        on_status=print_status,
    )
    try:
        if stream:
            reply = await orchestrator.stream_reply(
                "demo", prompt, on_update=lambda text: print(f"\r{text}", end="", flush=True)
            )
            print()
            logger.info("saved: %r", reply)
        else:
            for message in await orchestrator.run("demo", prompt):
                print(f"[{message.role}] {message.content}")
    except SwitchboardError as exc:
        logger.error("%s (%s)", exc, exc.hint or "no hint")
    finally:
        await orchestrator.aclose()
        if search is not None:
            await search.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one agent turn")
    parser.add_argument("prompt", nargs="?", default="Give me 3 hooks for a video about home espresso")
    parser.add_argument("--stream", action="store_true", help="stream a plain reply instead")
    args = parser.parse_args()
    asyncio.run(main(args.prompt, args.stream))
