"""Main entry point for taskpilot."""

import asyncio
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from taskpilot.agent import Agent
from taskpilot.cli import TerminalUI
from taskpilot.config import Config, set_config
from taskpilot.confirmation import ConfirmationGate
from taskpilot.exceptions import ConfigurationError
from taskpilot.llm import (
    api_key_env_var,
    create_provider,
    normalize_provider,
    requires_api_key,
    resolve_api_key,
)
from taskpilot.logging import configure_logging, get_logger
from taskpilot.session import Session
from taskpilot.tools import build_default_registry

log = get_logger(__name__)

app = typer.Typer(help="taskpilot - a tool-using LLM agent for your terminal", add_completion=False)


def check_credentials(cfg: Config) -> None:
    """Fail fast when the configured provider has no usable API key."""
    provider = cfg.model.provider
    if not requires_api_key(provider):
        return
    if resolve_api_key(provider, cfg.model.api_key or None):
        return
    env_var = api_key_env_var(provider)
    if env_var is None:
        raise ConfigurationError(f"Unsupported model provider: {provider}")
    raise ConfigurationError(
        f"Missing API key for provider '{provider}'. "
        f"Set {env_var} or model.api_key in config.yaml."
    )


def _read_config(path: Path | None) -> Config:
    try:
        return Config.from_yaml(path) if path is not None else Config.load()
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(
    config: str = "",
    model: str = "",
    provider: str = "",
    max_iterations: int = 0,
) -> Config:
    """Load configuration and apply command-line overrides."""
    if config:
        config_path = Path(config).expanduser()
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config}")
        cfg = _read_config(config_path)
    else:
        cfg = _read_config(None)

    if model:
        cfg.model.model = model
    if provider and normalize_provider(provider) != normalize_provider(cfg.model.provider):
        # A key loaded for the configured provider does not carry over.
        cfg.model.provider = provider
        cfg.model.api_key = ""
        cfg.fill_api_key_from_env()
    if max_iterations > 0:
        cfg.agent.max_iterations = max_iterations
    return cfg


def build_agent(cfg: Config, ui: TerminalUI) -> Agent:
    """Wire provider, tools and confirmation gate to the terminal UI."""
    gate = ConfirmationGate(ask=ui.ask, reject=ui.reject_answer)
    registry = build_default_registry(cfg.tools.enabled)
    registry.set_approval_callback(gate.confirm)
    try:
        provider = create_provider(
            provider=cfg.model.provider,
            model=cfg.model.model,
            api_key=cfg.model.api_key or None,
            base_url=cfg.model.base_url or None,
            temperature=cfg.model.temperature,
            max_tokens=cfg.model.max_tokens,
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    return Agent(
        provider=provider,
        tools=registry,
        max_iterations=cfg.agent.max_iterations,
        system_prompt=cfg.agent.system_prompt,
        tool_call_callback=ui.print_tool_call,
        tool_output_callback=ui.print_tool_output,
    )


async def run_single(ui: TerminalUI, agent: Agent, task: str) -> bool:
    """Run one task in a fresh session; True when it finished."""
    session = Session.fresh()
    try:
        ui.print_working(task)
        result = await agent.run_task(session, task)
        ui.print_result(result)
        ui.print_usage(session.ledger)
        return result.finished
    finally:
        await agent.provider.close()


async def run_interactive(ui: TerminalUI, agent: Agent) -> None:
    """Prompt for tasks until the operator quits."""
    session = Session.fresh()
    try:
        while True:
            try:
                user_input = ui.prompt_task()
            except (EOFError, KeyboardInterrupt):
                log.info("Input closed")
                break

            kind = ui.classify_input(user_input)
            if kind == "quit":
                break
            if kind == "reset":
                session = Session.fresh()
                ui.print_reset()
                continue
            if kind == "empty":
                continue

            task = user_input.strip()
            ui.print_working(task)
            result = await agent.run_task(session, task)
            ui.print_result(result)
            ui.print_usage(session.ledger)
    finally:
        ui.print_goodbye()
        await agent.provider.close()


@app.command()
def run(
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    provider: str = typer.Option("", "-p", "--provider", help="Override provider"),
    max_iterations: int = typer.Option(0, "--max-iterations", help="Override model turns per task"),
    task: str = typer.Option("", "-t", "--task", help="Run a single task and exit"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Start an interactive taskpilot session."""
    try:
        cfg = load_config(config, model, provider, max_iterations)
        set_config(cfg)
        configure_logging("DEBUG" if verbose else None)
        check_credentials(cfg)
        ui = TerminalUI(config=cfg)
        agent = build_agent(cfg, ui)
    except ConfigurationError as e:
        log.error("Startup failed", error=str(e))
        typer.secho(f"Error: {e}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        if task:
            finished = asyncio.run(run_single(ui, agent, task))
            if not finished:
                raise typer.Exit(code=2)
        else:
            asyncio.run(run_interactive(ui, agent))
    except KeyboardInterrupt:
        log.info("Interrupted by user")


@app.command()
def version() -> None:
    """Show version information."""
    from taskpilot import __version__

    typer.echo(f"taskpilot v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
