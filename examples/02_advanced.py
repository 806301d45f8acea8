"""
Advanced usage - configuration, progress, cancellation and logging
"""
import asyncio
import logging

from pinmepy import (
    PinmeClient,
    APIConfig,
    CancellationToken,
    ProgressState,
    setup_logging,
)


async def main():
    logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
    setup_logging(logging.INFO)

    # Environment variables first, explicit overrides win
    config = APIConfig.from_env(max_concurrent_uploads=4)
    config.retry.max_retries = 3

    token = CancellationToken()

    def on_progress(state: ProgressState):
        print(f"{state.phase.value:>12} {state.percentage:5.1f}% ({state.elapsed:.0f}s)")

    async with PinmeClient(config) as pinme:
        upload = asyncio.create_task(
            pinme.upload("site/", progress_callback=on_progress, token=token)
        )

        # Give up after two minutes; in-flight chunks are aborted
        asyncio.get_running_loop().call_later(120, token.cancel, "took too long")

        result = await upload
        if result:
            print(f"Done: {result.to_dict()}")
        else:
            print(f"Failed: {pinme.last_error}")


if __name__ == "__main__":
    asyncio.run(main())
