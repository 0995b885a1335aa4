"""
Kira - Main Entry Point
=======================

Wires the assistant together and starts it:
1. Loads configuration
2. Loads the conversation history from disk
3. Creates the wallet and reasoning clients
4. Builds the action handlers and the agent
5. Registers Slack handlers and connects via Socket Mode

Run with:
    python -m kira.main

Or after installing:
    kira
"""

import asyncio
import signal
import sys

from kira.utils.config import get_config
from kira.utils.logger import Logger

main_logger = Logger("Main")


async def main():
    """Initialize all components and run the bot."""
    main_logger.info("Starting Kira...")

    try:
        main_logger.info("Loading configuration...")
        config = get_config()

        main_logger.info("Loading conversation history...")
        from kira.memory import HistoryStore
        history = HistoryStore(config.history.file, max_messages=config.history.max_messages)

        main_logger.info("Connecting wallet service...")
        from kira.wallet import WalletServiceClient
        wallet = WalletServiceClient(
            base_url=config.wallet.base_url,
            token=config.wallet.token,
            timeout=config.wallet.timeout_seconds,
        )

        main_logger.info("Creating agent...")
        from kira.actions.wallet_actions import WalletActions
        from kira.agent import Agent, OpenAIReasoningService
        reasoning = OpenAIReasoningService(
            api_key=config.openai.api_key,
            model=config.openai.model,
            timeout=config.openai.timeout_seconds,
        )
        agent = Agent(
            history=history,
            balances=wallet,
            reasoning=reasoning,
            registry=WalletActions(wallet).registry(),
            timeout=config.openai.timeout_seconds,
            model=config.openai.model,
        )

        main_logger.info("Creating Slack app...")
        from kira.slack import create_slack_app, create_socket_handler, register_handlers
        app = create_slack_app(config.slack)
        register_handlers(app, agent)

        main_logger.info("Starting Socket Mode connection...")
        handler = await create_socket_handler(app, config.slack)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(
                sig,
                lambda: asyncio.create_task(_shutdown(handler, wallet))
            )

        main_logger.info("Kira is running! Press Ctrl+C to stop.")
        await handler.start_async()

    except KeyboardInterrupt:
        main_logger.info("Received interrupt signal")
    except Exception as e:
        main_logger.error("Failed to start bot", e)
        sys.exit(1)


async def _shutdown(handler, wallet):
    """Close the Slack connection and the wallet client."""
    main_logger.info("Shutting down...")

    await handler.close_async()
    await wallet.aclose()

    main_logger.info("Shutdown complete")


def run():
    """Synchronous entry point for the `kira` command."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
