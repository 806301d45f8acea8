"""
Upload a file or directory to IPFS
"""
import asyncio
import sys

from pinmepy import PinmeClient


async def main(path: str):
    async with PinmeClient() as pinme:

        # Files are uploaded as-is, directories are zipped first
        result = await pinme.upload(path)
        if result is None:
            print(f"Upload failed: {pinme.last_error}")
            return

        print(f"Content hash: {result.content_hash}")
        if result.short_url:
            print(f"Short URL: {result.short_url}")

        # Recent uploads, newest first
        for record in pinme.history(limit=5):
            print(f"  {record.name}: {record.content_hash}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "dist"))
