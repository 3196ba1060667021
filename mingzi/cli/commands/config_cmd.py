"""Config command for viewing and managing mingzi configuration."""

import json

import typer

from ..app import app, console, get_json_mode
from ...config import (
    CONFIG_FILE,
    CustomProviderConfig,
    coerce_field,
    get_api_key_for_provider,
    get_config,
    get_secret,
    reset_config,
)


VALID_KEYS = {
    "generation.model",
    "generation.timeout_seconds",
    "generation.max_output_tokens",
    "generation.log_requests",
    "quota.anonymous_daily_generations",
    "quota.authenticated_count",
    "quota.anonymous_count",
    "payments.api_base_url",
    "payments.api_key_env",
    "payments.webhook_secret_env",
    "payments.success_url",
    "defaults.db_path",
}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. generation.model, quota.anonymous_daily_generations)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify mingzi configuration.

    Examples:
        mingzi config show
        mingzi config set generation.model openai/gpt-4o-mini
        mingzi config set generation.model anthropic/claude-haiku-4-5
        mingzi config set providers.local.base_url http://localhost:8000/v1
        mingzi config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] mingzi config set <key> <value>")
            _print_valid_keys()
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _print_valid_keys() -> None:
    console.print()
    console.print("Available keys:")
    for k in sorted(VALID_KEYS):
        console.print(f"  {k}")
    console.print("  providers.<name>.base_url")
    console.print("  providers.<name>.api_key_env")


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    if get_json_mode():
        print(json.dumps(config.to_dict(), indent=2))
        return

    console.print()
    console.print("[bold]Mingzi Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Generation[/bold cyan]")
    console.print(f"  model             = {config.generation.model}")
    console.print(f"  timeout_seconds   = {config.generation.timeout_seconds}")
    console.print(f"  max_output_tokens = {config.generation.max_output_tokens}")
    console.print(f"  log_requests      = {config.generation.log_requests}")

    console.print()
    console.print("[bold cyan]Quota[/bold cyan]")
    console.print(
        f"  anonymous_daily_generations = {config.quota.anonymous_daily_generations}"
    )
    console.print(f"  authenticated_count         = {config.quota.authenticated_count}")
    console.print(f"  anonymous_count             = {config.quota.anonymous_count}")

    console.print()
    console.print("[bold cyan]Payments[/bold cyan]")
    console.print(f"  api_base_url       = {config.payments.api_base_url}")
    console.print(f"  api_key_env        = {config.payments.api_key_env}")
    console.print(f"  webhook_secret_env = {config.payments.webhook_secret_env}")
    console.print(
        f"  success_url        = {config.payments.success_url or '[dim](unset)[/dim]'}"
    )

    if config.providers:
        console.print()
        console.print("[bold cyan]Custom Providers[/bold cyan]")
        for name, provider_cfg in config.providers.items():
            console.print(f"  {name}:")
            console.print(f"    base_url    = {provider_cfg.base_url}")
            if provider_cfg.api_key_env:
                console.print(f"    api_key_env = {provider_cfg.api_key_env}")

    console.print()
    console.print("[bold cyan]Defaults[/bold cyan]")
    console.print(f"  db_path = {config.defaults.db_path}")

    console.print()
    console.print("[bold cyan]API Keys[/bold cyan] (from env vars)")
    _show_key_status("OPENROUTER_API_KEY", get_api_key_for_provider("openrouter"))
    _show_key_status("OPENAI_API_KEY", get_api_key_for_provider("openai"))
    _show_key_status("ANTHROPIC_API_KEY", get_api_key_for_provider("anthropic"))
    _show_key_status("DEEPSEEK_API_KEY", get_api_key_for_provider("deepseek"))
    _show_key_status(config.payments.api_key_env, get_secret(config.payments.api_key_env))
    _show_key_status(
        config.payments.webhook_secret_env,
        get_secret(config.payments.webhook_secret_env),
    )

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _show_key_status(label: str, key: str):
    """Show whether a secret is configured, masked."""
    if key:
        masked = key[:8] + "..." + key[-4:] if len(key) > 16 else "***"
        console.print(f"  {label}: [green]{masked}[/green]")
    else:
        console.print(f"  {label}: [dim]not set[/dim]")


def _set_config(key: str, value: str):
    """Set a config value and save."""
    is_provider_key = key.startswith("providers.")
    if key not in VALID_KEYS and not is_provider_key:
        console.print(f"[red]Unknown key:[/red] {key}")
        _print_valid_keys()
        raise typer.Exit(1)

    config = get_config()

    if is_provider_key:
        parts = key.split(".", 2)
        if len(parts) != 3 or parts[2] not in ("base_url", "api_key_env"):
            console.print(
                f"[red]Invalid provider key:[/red] {key}\n"
                "Expected: providers.<name>.base_url or providers.<name>.api_key_env"
            )
            raise typer.Exit(1)
        provider_name, field_name = parts[1], parts[2]
        if provider_name not in config.providers:
            config.providers[provider_name] = CustomProviderConfig()
        setattr(config.providers[provider_name], field_name, value)
    else:
        section, field_name = key.split(".", 1)
        target = getattr(config, section)
        try:
            setattr(target, field_name, coerce_field(field_name, value))
        except ValueError:
            console.print(f"[red]Invalid value for {key}:[/red] {value}")
            raise typer.Exit(1)

    config.save()
    reset_config()  # Clear cached singleton so next get_config() reloads

    console.print(f"[green]✓[/green] Set {key} = {value}")
    console.print(f"  Saved to {CONFIG_FILE}")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        reset_config()
        console.print("[green]✓[/green] Config reset to defaults")
        console.print(f"  Removed {CONFIG_FILE}")
    else:
        console.print("Config already at defaults (no config file exists)")
