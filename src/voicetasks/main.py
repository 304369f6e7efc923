"""
voicetasks CLI

Usage:
    voicetasks                  # Interactive chat (default)
    voicetasks chat --debug     # Chat with debug logging
    voicetasks agenda           # Today's agenda and suggested order
    voicetasks insights         # Productivity patterns and energy windows

The chat loop:
1. Loads configuration
2. Initializes logging
3. Opens storage
4. Starts the due-task monitor
5. Reads lines until EOF or "quit"
"""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from typing import NoReturn, Optional

from voicetasks import __version__
from voicetasks.analytics import AnalyticsEngine
from voicetasks.commands import (
    CommandExecutor,
    VoiceCommandParser,
    command_suggestions,
)
from voicetasks.config import VoiceTasksConfig, get_config
from voicetasks.conversation import ChatSession, LocalAssistant, TaskAssistant
from voicetasks.llm import build_delegate
from voicetasks.notifications import DueTaskMonitor, LogNotifier, NotificationService
from voicetasks.storage import (
    DocumentStore,
    MemoryStore,
    SQLStore,
    load_memory,
    load_preferences,
)
from voicetasks.tasks import TaskStore
from voicetasks.utils.logging import clear_context, get_logger, setup_logging
from voicetasks.utils.timefmt import (
    format_duration,
    format_time_of_day,
    hour_range,
    time_of_day_category,
)

EXIT_WORDS = {"quit", "exit", "bye"}


class VoiceTasksApp:
    """
    Application coordinator.

    Builds every service once from config and owns their lifetime.
    """

    def __init__(self, config: VoiceTasksConfig, ephemeral: bool = False):
        self.config = config
        self.logger = get_logger("voicetasks.app")

        self.storage: DocumentStore = (
            MemoryStore()
            if ephemeral or config.storage.driver == "memory"
            else SQLStore(config.storage.url, echo=config.storage.echo)
        )
        self.preferences = load_preferences(self.storage)

        self.notifications = NotificationService(
            LogNotifier(echo=print),
            settings=self.preferences.notification_settings,
            enabled=config.notifications.enabled,
            speak=config.notifications.speak,
        )
        self.analytics = AnalyticsEngine(self.storage)
        self.store = TaskStore(self.storage, self.analytics, notifications=self.notifications)

        memory = load_memory(self.storage)
        rng = random.Random(config.extraction.seed)
        self.assistant = TaskAssistant(
            LocalAssistant(memory, rng=rng, theme_window=config.extraction.theme_window),
            remote=build_delegate(config.llm),
            memory_provider=lambda: load_memory(self.storage),
        )
        self.parser = VoiceCommandParser()
        self.executor = CommandExecutor(self.store)
        self.monitor = DueTaskMonitor(
            self.store,
            self.notifications,
            check_interval=config.notifications.check_interval,
        )

        self.logger.info(
            "app_ready",
            version=__version__,
            storage=type(self.storage).__name__,
            remote=self.assistant.remote_enabled,
        )

    def new_session(self) -> ChatSession:
        return ChatSession(
            self.store,
            self.assistant,
            self.storage,
            parser=self.parser,
            executor=self.executor,
        )

    def close(self) -> None:
        if isinstance(self.storage, SQLStore):
            self.storage.close()
        self.logger.debug("storage_closed")


# =============================================================================
# Subcommands
# =============================================================================


async def run_chat(app: VoiceTasksApp) -> int:
    """Interactive loop over stdin."""
    session = app.new_session()
    loop = asyncio.get_running_loop()

    if app.config.notifications.enabled:
        await app.monitor.start()
        app.monitor.send_daily_agenda()

    print(f"voicetasks {__version__}. Type 'help' for commands, 'quit' to leave.")
    try:
        while True:
            try:
                line = await loop.run_in_executor(None, input, "> ")
            except EOFError:
                break

            text = line.strip()
            if not text:
                continue
            if text.lower() in EXIT_WORDS:
                break
            if text.lower() == "help":
                print("\n".join(command_suggestions()))
                continue

            reply = await session.handle(text)
            print(reply.message)
            for task in reply.created:
                print(f"  + {task.title} [{task.priority.value}]")
            if reply.suggestions:
                print("  Suggestions: " + " | ".join(reply.suggestions))
    except KeyboardInterrupt:
        pass
    finally:
        await app.monitor.stop()
        clear_context()

    return 0


def run_agenda(app: VoiceTasksApp) -> int:
    """Print today's agenda and the suggested working order."""
    result = app.executor.execute(app.parser.parse_command("show agenda"))
    print(result.message)

    pending = app.store.by_status("pending")
    by_id = {task.id: task for task in pending}
    recommendations = app.analytics.calculate_task_order(pending)
    if recommendations:
        print("\nSuggested order:")
        for rank, rec in enumerate(recommendations[:10], start=1):
            print(f"{rank:2}. {by_id[rec.task_id].title} (score {rec.score})")
            print(f"    {'; '.join(rec.reasons)}")

        top = by_id[recommendations[0].task_id]
        slots = app.analytics.optimal_time_suggestions(top)
        if slots:
            hours = ", ".join(format_time_of_day(s.hour) for s in slots)
            app.notifications.smart_suggestion(f'Good times to work on "{top.title}": {hours}')

    timers = app.store.active_timers()
    for task in timers:
        print(f"\nTimer running: {task.title} (logged {format_duration(task.total_time_spent)})")
    return 0


def run_insights(app: VoiceTasksApp) -> int:
    """Print productivity patterns, energy windows and task stats."""
    stats = app.store.stats()
    print(
        f"Tasks: {stats['total']} total, {stats['completed']} completed, "
        f"{stats['overdue']} overdue ({stats['completion_rate']:.0f}% complete)"
    )

    patterns = [p for p in app.analytics.compute_productivity_patterns() if p.task_count]
    if not patterns:
        print("No completed tasks tracked yet.")
        return 0

    print("\nCompletions by hour:")
    for pattern in patterns:
        print(
            f"  {format_time_of_day(pattern.hour_of_day):>5}: "
            f"{pattern.task_count} task(s), avg {format_duration(round(pattern.avg_completion_time))}"
        )

    print("\nEnergy windows:")
    for window in app.analytics.detect_energy_windows():
        print(
            f"  {hour_range(window.start_hour, window.end_hour)} ({time_of_day_category(window.start_hour)}): "
            f"{window.energy_level.value} "
            f"(confidence {window.confidence:.1f})"
        )
    print(f"\nCurrent energy: {app.analytics.current_energy_level().value}")
    return 0


async def async_main(app: VoiceTasksApp, args: argparse.Namespace) -> int:
    """Async entry point."""
    try:
        if args.command == "agenda":
            return run_agenda(app)
        if args.command == "insights":
            return run_insights(app)
        return await run_chat(app)
    except Exception as e:
        app.logger.error("app_error", error=str(e), exc_info=True)
        return 1
    finally:
        app.close()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="voicetasks",
        description="voicetasks - conversational task manager",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="Use pretty console logging instead of JSON",
    )
    parser.add_argument(
        "--ephemeral",
        action="store_true",
        help="Keep everything in memory for this run",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="chat",
        choices=["chat", "agenda", "insights"],
        help="What to run (default: chat)",
    )

    return parser.parse_args(argv)


def main() -> NoReturn:
    """Main entry point for the voicetasks command."""
    args = parse_args()

    config = get_config()

    if args.debug:
        config.log.level = "DEBUG"
    if args.console:
        config.log.format = "console"

    setup_logging(
        level=config.log.level,
        format=config.log.format,
        log_file=config.log.file,
    )

    app = VoiceTasksApp(config, ephemeral=args.ephemeral)
    exit_code = asyncio.run(async_main(app, args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
