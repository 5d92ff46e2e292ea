#!/usr/bin/env python3
"""Group file listing example using the bot gateway client."""

import asyncio

from bot_gateway import AsyncGatewayClient, RemoteFileNotFoundError, configure_logging


async def main() -> None:
    """List a group's root directory, then create and rename a folder."""
    configure_logging()
    group = 987654

    async with AsyncGatewayClient(base_url="http://localhost:8080") as client:
        async with client.session(bot_id=123456) as session:
            files = await client.get_file_list(session, group, with_download_info=True)
            for f in files:
                kind = "dir " if f.is_directory else "file"
                print(f"{kind} {f.name} ({f.size or 0} bytes)")

            await client.create_directory(session, group, None, "reports")

            try:
                await client.rename_file(session, group, "/missing", "renamed")
            except RemoteFileNotFoundError as e:
                print(f"Rename failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
