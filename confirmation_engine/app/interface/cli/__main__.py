import asyncio
import inspect
import typer
import logging
from dotenv import load_dotenv
from InquirerPy import inquirer
from confirmation_engine.app.config import settings
from confirmation_engine.app.interface.tasks import TASKS


load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = typer.Typer()
confirmator_app = typer.Typer(help="cli for confirming on chain events.")
app.add_typer(confirmator_app, name="confirmator")


@confirmator_app.command("run")
def run() -> None:
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()
    contract_address = inquirer.text(
        message="Contract address:",
        default=settings.contract_address,
    ).execute()
    backend = inquirer.select(
        message="Persistence backend:",
        choices=["sqlalchemy", "memory"],
        default="sqlalchemy",
    ).execute()

    task = TASKS[task_name]

    kwargs: dict[str, object] = {
        "contract_address": contract_address.strip() or None,
        "backend": backend,
    }

    if backend == "memory":
        kwargs["events_file"] = inquirer.text(
            message="JSON dump of decoded events to seed the in-memory store:",
            default="pending_events.json",
        ).execute()

    params = inspect.signature(task).parameters

    if "max_blocks" in params:
        max_blocks_str = inquirer.text(
            message="Max blocks to process (optional, empty = run forever):",
            default="",
        ).execute()
        kwargs["max_blocks"] = int(max_blocks_str) if max_blocks_str.strip() else None

    asyncio.run(task(**kwargs))  # type: ignore


if __name__ == "__main__":
    typer.echo("--- Confirmation Engine CLI ---")
    app()
