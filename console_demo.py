"""
Offline console demo: chat with the booking assistant in the terminal.

Runs the real dialogue driver, stores, reservation service, and vacate
scheduler against the in-memory floor plan. Manager commands prefixed
with "/" drive the table lifecycle alongside the conversation.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario manager
"""

import argparse

from table_assistant.config import settings
from table_assistant.engine import BookingWorkflowEngine
from table_assistant.schemas.customer_schema import Role
from table_assistant.utils import format_time

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CUSTOMER_ID = 10
MANAGER_ID = 2


class ConsoleSession:
    """A customer and a manager sharing one engine in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "hello",
            "book a table for 4",
            "table 3",
            "tomorrow",
            "7:00 pm",
            "yes",
            "show my reservations",
        ],
        "cancel": [
            "book a table",
            "25",
            "6",
            "start over",
            "cancel",
        ],
        "queue": [
            "join the queue for 3",
            "what's my queue position",
            "leave the queue",
        ],
        "manager": [
            "/seat 5 10 1",
            "/alerts",
            "/stats",
            "/vacate 5",
            "/notifications",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self) -> None:
        self.engine = BookingWorkflowEngine()
        self.role = Role.CUSTOMER.value

    def agent_say(self, text: str, quick_replies: list[str]) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")
        if quick_replies:
            print(f"{DIM}  [{' | '.join(quick_replies)}]{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  TABLE ASSISTANT - {title}{RESET}")
        print(f"{BOLD}  Restaurant: {settings.restaurant_name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[You] {RESET}{step}")
            self._process_input(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Unread manager notifications: {self.engine.unread_count()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run(self) -> None:
        self._banner("Console Demo")
        print(f"{DIM}  Type 'quit' to exit, '/help' for manager commands{RESET}")
        self.engine.start()
        try:
            while True:
                user_input = input(f"\n{BLUE}[You] {RESET}").strip()
                if not user_input:
                    continue
                if user_input.lower() in ("quit", "q"):
                    print(f"\n{DIM}Session ended.{RESET}")
                    return
                if len(user_input) > self.MAX_INPUT_LENGTH:
                    print(f"{YELLOW}That was quite long. Could you keep it brief?{RESET}")
                    continue
                self._process_input(user_input)
        finally:
            self.engine.stop()

    def _process_input(self, text: str) -> None:
        if text.startswith("/"):
            self._handle_command(text[1:].split())
            return

        reply = self.engine.handle_message(CUSTOMER_ID, self.role, text)
        self.agent_say(reply.response_text, reply.quick_replies)
        self.system_log(f"Intent: {reply.intent} ({reply.confidence}), "
                        f"step: {reply.session_step.value}")
        for notification in self.engine.run_due_notifications():
            print(f"{YELLOW}  !! {notification.message}{RESET}")

    # ------------------------------------------------------------------ #
    # Manager commands
    # ------------------------------------------------------------------ #

    def _handle_command(self, parts: list[str]) -> None:
        if not parts:
            return
        command, args = parts[0].lower(), parts[1:]

        if command == "help":
            self.system_log("/tables  /stats  /seat <table> <customer> <party>  /vacate <table>")
            self.system_log("/alerts  /notifications  /read  /queue  /history  /role <name>")
        elif command == "tables":
            for table in self.engine.tables.list_tables():
                self.system_log(f"{table.label()}: {table.status.value}")
        elif command == "stats":
            reply = self.engine.handle_message(MANAGER_ID, Role.MANAGER.value, "stats")
            self.agent_say(reply.response_text, reply.quick_replies)
        elif command == "seat" and len(args) == 3:
            table_id, customer_id, party_size = (int(a) for a in args)
            result = self.engine.reservations.seat_walk_in(
                table_id, customer_id, party_size, seated_by_id=MANAGER_ID
            )
            self.system_log(result["message"])
        elif command == "vacate" and len(args) == 1:
            self.system_log(self.engine.vacate_table(int(args[0]))["message"])
        elif command == "alerts":
            alerts = self.engine.nearing_vacate()
            if not alerts:
                self.system_log("No tables about to free up")
            for alert in alerts:
                self.system_log(
                    f"Table #{alert.table_number}: {alert.minutes_remaining} min "
                    f"({alert.customer_name})"
                )
            for entry in self.engine.scheduler.pending():
                self.system_log(
                    f"Armed: Table #{entry.table_number} vacates at "
                    f"{format_time(entry.expected_vacate_time)}"
                )
        elif command == "notifications":
            for notification in self.engine.list_notifications():
                flag = " " if notification.read else "*"
                self.system_log(f"{flag} [{notification.id}] {notification.message}")
            self.system_log(f"Unread: {self.engine.unread_count()}")
        elif command == "read":
            self.engine.mark_all_read()
            self.system_log("All notifications marked read")
        elif command == "queue":
            for entry in self.engine.queue.waiting():
                self.system_log(
                    f"#{entry.position} customer {entry.customer_id} "
                    f"(party of {entry.party_size})"
                )
        elif command == "history":
            for record in self.engine.reservation_history(MANAGER_ID, Role.MANAGER.value):
                self.system_log(
                    f"[{record.id}] Table #{record.table_number} customer {record.customer_id} "
                    f"{record.status.value}"
                )
        elif command == "role" and len(args) == 1:
            self.role = args[0].capitalize()
            self.system_log(f"Chatting as {self.role}")
        else:
            print(f"{RED}Unknown command. Type /help{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
