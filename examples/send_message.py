#!/usr/bin/env python3
"""Messaging example: send a chain, poll events, cancel a slow call."""

import asyncio

from bot_gateway import (
    AsyncGatewayClient,
    CanceledError,
    CancellationSource,
    GroupMessageEvent,
    HandlerRegistry,
    MessageChainBuilder,
    Session,
    configure_logging,
)

registry = HandlerRegistry()


@registry.on("GroupMessage", schema=GroupMessageEvent)
async def print_group_message(session: Session, event: GroupMessageEvent) -> None:
    print(f"[{event.sender.group.name}] {event.sender.member_name}: {event.text}")


async def main() -> None:
    """Send a message, dispatch queued events and cancel a listing."""
    configure_logging()

    async with AsyncGatewayClient() as client:
        async with client.session(bot_id=123456) as session:
            chain = MessageChainBuilder().add_at(10002).add_plain(" hello").add_face(14)
            message_id = await client.send_group_message(session, 987654, chain)
            print(f"Sent message {message_id}")

            for event in await client.fetch_messages(session, count=20):
                await registry.dispatch(session, event)

            # Per-call cancellation leaves the session usable
            source = CancellationSource()
            task = asyncio.create_task(
                client.get_file_list(session, 987654, cancel=source.token)
            )
            source.cancel()
            try:
                await task
            except CanceledError as e:
                print(f"Listing canceled by {e.by.value}")


if __name__ == "__main__":
    asyncio.run(main())
