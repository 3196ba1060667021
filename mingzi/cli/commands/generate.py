"""Generate command: run one naming request from the terminal."""

import random

import typer

from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output
from ...config import get_config
from ...core.models import Caller, GenerationRequest
from ...errors import (
    BatchNotFound,
    InsufficientCredits,
    MingziError,
    PersistenceError,
    ProviderError,
    QuotaExceeded,
    QuotaUnavailable,
    ValidationError,
)
from ...service import create_naming_service

_EXIT_CODES: dict[type[MingziError], int] = {
    ValidationError: ExitCode.VALIDATION_ERROR,
    BatchNotFound: ExitCode.VALIDATION_ERROR,
    QuotaExceeded: ExitCode.QUOTA_ERROR,
    InsufficientCredits: ExitCode.QUOTA_ERROR,
    ProviderError: ExitCode.CONFIG_ERROR,
    QuotaUnavailable: ExitCode.STORAGE_ERROR,
    PersistenceError: ExitCode.STORAGE_ERROR,
}


@app.command("generate")
def generate_command(
    english_name: str = typer.Argument(..., help="English name to base the names on"),
    gender: str = typer.Option(..., "--gender", "-g", help="male, female or other"),
    plan: str = typer.Option("1", "--plan", "-p", help="1/Standard or 4/Premium"),
    birth_year: str | None = typer.Option(None, "--birth-year", help="Birth year"),
    traits: str | None = typer.Option(None, "--traits", help="Personality traits"),
    preferences: str | None = typer.Option(
        None, "--preferences", help="Name preferences (meaning, sound, style)"
    ),
    user: str | None = typer.Option(
        None, "--user", "-u", help="Generate as this user (spends credits)"
    ),
    email: str | None = typer.Option(None, "--email", help="Email for --user"),
    batch: str | None = typer.Option(
        None, "--batch", help="Continue an existing batch (requires --user)"
    ),
    seed: int | None = typer.Option(None, "--seed", help="Seed for reproducible prompts"),
):
    """Generate Chinese names.

    Examples:
        mingzi generate Emily --gender female
        mingzi generate David -g male --plan Premium --user u_123 --traits "curious, calm"
        mingzi --json generate Alex -g other --user u_123 --batch <batch-id>
    """
    out = Output(console=console, json_mode=get_json_mode())

    payload = {
        "englishName": english_name,
        "gender": gender,
        "planType": plan,
        "birthYear": birth_year,
        "personalityTraits": traits,
        "namePreferences": preferences,
        "continueBatch": bool(batch),
        "batchId": batch,
    }
    caller = Caller(user_id=user, email=email)

    try:
        request = GenerationRequest.from_payload(payload)
        service = create_naming_service(
            get_config(), rng=random.Random(seed) if seed is not None else None
        )
        if not caller.authenticated:
            out.text("[dim]Anonymous request: smaller batch, no personalization[/dim]")
        with console.status("[cyan]Generating names...[/cyan]"):
            response = service.generate(request, caller)
    except MingziError as e:
        out.error(e.message, exit_code=_EXIT_CODES.get(type(e), ExitCode.VALIDATION_ERROR))
        raise typer.Exit(out.finish())
    except ValueError as e:
        out.error(
            str(e),
            suggestion="Check generation.model with: mingzi config show",
            exit_code=ExitCode.CONFIG_ERROR,
        )
        raise typer.Exit(out.finish())

    out.success(response.message, **response.model_dump(by_alias=True))
    out.table(
        "Names",
        ["Chinese", "Pinyin", "Meaning"],
        [[n.chinese, n.pinyin, n.meaning] for n in response.names],
        data_key="rows",
    )
    if response.batch_id:
        out.text(
            f"Batch [bold]{response.batch_id}[/bold] "
            f"(round {response.generation_round}, {response.credits_used} credits)"
        )
    raise typer.Exit(out.finish())
