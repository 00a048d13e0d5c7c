"""
Chatbot Platform CLI.

Registered as the `chatbot-platform` console script via pyproject.toml. The
interactive ``shell`` is one session: its token lives only as long as the
process, exactly like a browser tab.
"""

import asyncio
import shlex
from typing import List, Optional

import click

from chatbot_platform.app import ChatbotPlatform
from chatbot_platform.core.config import Settings
from chatbot_platform.services.persistent_store import PersistentStore
from chatbot_platform.utils.logger import init_logging

HELP_TEXT = """Commands
/register                      Create an account (and sign in)
/login                         Sign in
/logout                        Sign out and clear the session
/projects                      List your projects
/new                           Create a project from a name and system prompt
/use N                         Open project N from /projects
/delete N                      Delete project N and its conversation
/history                       Show the active conversation
/help                          Show this help
/quit                          Leave the shell
Anything else is sent to the active project.
"""


class RevealPrinter:
    """Prints only the newly revealed tail of each streaming frame."""

    def __init__(self):
        self.printed = ""

    def __call__(self, frame: str) -> None:
        click.echo(frame[len(self.printed):], nl=False)
        self.printed = frame

    def reset(self) -> None:
        self.printed = ""


def _show_error(platform: ChatbotPlatform) -> None:
    if platform.error:
        click.secho(platform.error, fg="red", err=True)


def _project_at(platform: ChatbotPlatform, args: List[str]) -> Optional[str]:
    if len(args) != 1 or not args[0].isdigit():
        click.secho("Usage: /use N or /delete N (see /projects)", fg="yellow", err=True)
        return None
    index = int(args[0]) - 1
    if not 0 <= index < len(platform.projects):
        click.secho(f"No project number {args[0]}", fg="yellow", err=True)
        return None
    return platform.projects[index].id


def _print_projects(platform: ChatbotPlatform) -> None:
    if not platform.projects:
        click.echo("No projects yet. Create one with /new.")
        return
    active = platform.selected_project.id if platform.selected_project else None
    for i, project in enumerate(platform.projects, start=1):
        marker = "*" if project.id == active else " "
        click.echo(f" {marker} {i:>2}. {project.name}")


def _print_history(platform: ChatbotPlatform) -> None:
    if platform.selected_project is None:
        click.echo("No project selected. Use /use N.")
        return
    if not platform.messages:
        click.echo("Start a conversation")
        return
    for message in platform.messages:
        label = "You" if message.role == "user" else "Assistant"
        click.secho(f"{label}:", fg="cyan" if message.role == "user" else "green", bold=True)
        click.echo(message.content)


def _dispatch(platform: ChatbotPlatform, line: str, printer: RevealPrinter) -> bool:
    """Handle one input line. Returns False when the shell should exit."""
    if not line.startswith("/"):
        if platform.current_user is None:
            click.secho("Please /login or /register first.", fg="yellow", err=True)
            return True
        if platform.selected_project is None:
            click.secho("Select a project with /use N first.", fg="yellow", err=True)
            return True
        printer.reset()
        click.secho("Assistant: ", fg="green", bold=True, nl=False)
        reply = asyncio.run(platform.send(line))
        click.echo()
        if reply is None:
            _show_error(platform)
        return True

    command, *args = shlex.split(line)

    if command in ("/quit", "/exit"):
        return False
    if command == "/help":
        click.echo(HELP_TEXT)
    elif command == "/register":
        name = click.prompt("Name", default="", show_default=False)
        email = click.prompt("Email", default="", show_default=False)
        password = click.prompt("Password", hide_input=True, default="", show_default=False)
        if asyncio.run(platform.register(name, email, password)):
            click.secho(f"Welcome, {platform.current_user.name}", fg="green")
        _show_error(platform)
    elif command == "/login":
        email = click.prompt("Email", default="", show_default=False)
        password = click.prompt("Password", hide_input=True, default="", show_default=False)
        if asyncio.run(platform.login(email, password)):
            click.secho(f"Signed in as {platform.current_user.email}", fg="green")
            _print_projects(platform)
        _show_error(platform)
    elif command == "/logout":
        platform.logout()
        click.echo("Signed out.")
    elif command == "/projects":
        _print_projects(platform)
    elif command == "/new":
        name = click.prompt("Project name", default="", show_default=False)
        system_prompt = click.prompt("System prompt", default="", show_default=False)
        project = platform.create_project(name, system_prompt)
        if project is not None:
            click.secho(f"Created project {project.name}", fg="green")
        _show_error(platform)
    elif command in ("/use", "/delete"):
        project_id = _project_at(platform, args)
        if project_id is None:
            return True
        if command == "/use":
            if platform.select_project(project_id):
                click.secho(f"Now chatting with {platform.selected_project.name}", fg="green")
                _print_history(platform)
        elif platform.delete_project(project_id):
            click.echo("Project deleted.")
        _show_error(platform)
    elif command == "/history":
        _print_history(platform)
    else:
        click.secho(f"Unknown command {command}. Try /help.", fg="yellow", err=True)
    return True


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="chatbot-platform")
def main():
    """Build and chat with system-prompt agents."""


@main.command()
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="Override the persistent store URL.")
def shell(database_url: Optional[str]):
    """Start an interactive session."""
    init_logging()
    config = Settings(DATABASE_URL=database_url) if database_url else Settings()
    platform = ChatbotPlatform(config=config)
    printer = RevealPrinter()
    platform.conversation.add_reveal_listener(printer)

    click.secho(config.APP_TITLE, fg="cyan", bold=True)
    click.echo("Type /help for commands.")
    if platform.startup() is None:
        _show_error(platform)
        click.echo("Please /login or /register.")

    while True:
        prompt = platform.selected_project.name if platform.selected_project else "chat"
        try:
            line = click.prompt(prompt, prompt_suffix="> ", default="", show_default=False).strip()
        except click.Abort:
            click.echo()
            break
        if not line:
            continue
        try:
            if not _dispatch(platform, line, printer):
                break
        except ValueError as e:
            # shlex on unbalanced quotes
            click.secho(f"Could not parse command: {e}", fg="red", err=True)

    platform.logout()
    platform.store.close()


@main.command("init-db")
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="Override the persistent store URL.")
def init_db(database_url: Optional[str]):
    """Create the persistent store tables."""
    config = Settings(DATABASE_URL=database_url) if database_url else Settings()
    store = PersistentStore(config=config)
    click.secho(f"Persistent store ready at {config.DATABASE_URL}", fg="green")
    store.close()


if __name__ == "__main__":
    main()
