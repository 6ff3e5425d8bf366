#!/usr/bin/env python3
"""
Streaming chat example using chatstream.

Demonstrates a reply rendering fragment by fragment into the transcript.
"""

import asyncio
import os

from chatstream import AsyncChatClient, ChatSession


def show_fragment(turn, text):
    print(text, end="", flush=True)


async def main():
    async with AsyncChatClient(base_url=os.environ.get("PROXY_URL", "http://localhost:4000")) as client:
        session = ChatSession(
            client,
            credential=os.environ.get("PROXY_KEY", "sk-1234"),
            user_id="example-user",
            on_fragment=show_fragment,
        )

        models = await session.refresh_models()
        print("Streaming Chat Example")
        print("=" * 50)
        print(f"Models: {', '.join(models) or 'none'}")
        print(f"Using: {session.selected_model}\n")

        print("Question: Tell me a short story about a robot.\n")
        print("Response: ", end="", flush=True)
        outcome = await session.send("Tell me a short story about a robot.")
        print("\n")

        if outcome is not None and not outcome.ok:
            print(f"Stream ended with status {outcome.status}: {outcome.error}")

        print("Transcript:")
        for turn in session.transcript:
            print(f"  [{turn.role.value}] {turn.content}")


if __name__ == "__main__":
    asyncio.run(main())
