"""
Example: drive two Karabast sessions into a started private lobby.

Each participant gets its own browser context, so the two players keep
separate cookies and storage.

Usage:
  HOST_DECK=https://swudb.com/deck/... GUEST_DECK=https://swudb.com/deck/... \
      python examples/auto_setup_playwright.py

Set MIRRORBAST_TIMING_SCALE=2 on slow machines.
"""

import asyncio
import logging
import os

from playwright.async_api import async_playwright

from mirrorbast import (
    AutoSetupConfig,
    AutoSetupOrchestrator,
    JsonlTraceSink,
    PlaywrightSession,
    PlaywrightViewCoordinator,
    Tracer,
    fetch_deck_metadata,
)


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

    host_deck = os.environ["HOST_DECK"]
    guest_deck = os.environ.get("GUEST_DECK", host_deck)
    config = AutoSetupConfig.from_env()

    for label, deck in (("host", host_deck), ("guest", guest_deck)):
        meta = await fetch_deck_metadata(deck, api_url=config.metadata_api_url)
        print(f"{label}: {meta.name} by {meta.author}")

    run_id = "auto-setup-playwright"
    tracer = Tracer(run_id=run_id, sink=JsonlTraceSink(f"traces/{run_id}.jsonl"))

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=False)
        host_page = await (await browser.new_context()).new_page()
        guest_page = await (await browser.new_context()).new_page()

        orchestrator = AutoSetupOrchestrator(
            PlaywrightSession(host_page, label="host"),
            PlaywrightSession(guest_page, label="guest"),
            PlaywrightViewCoordinator(),
            config=config,
            tracer=tracer,
            on_ready=lambda: print("Lobby ready, game started"),
            on_failed=lambda message: print(f"Auto-setup failed: {message}"),
        )

        outcome = await orchestrator.start_orchestration(host_deck, guest_deck)
        print(f"status={outcome.status} invite={outcome.handoff_address}")

        if outcome.ok:
            # Leave both windows open for play.
            await asyncio.sleep(3600)
        await browser.close()

    tracer.close()


if __name__ == "__main__":
    asyncio.run(main())
