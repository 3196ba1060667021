"""Credits command: inspect and top up a user's prepaid balance."""

import typer

from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output
from ...config import get_config
from ...errors import PersistenceError
from ...storage import open_naming_db


@app.command("credits")
def credits_command(
    action: str = typer.Argument(..., help="Action: show, grant"),
    user: str = typer.Argument(..., help="User id"),
    amount: int | None = typer.Argument(None, help="Credits to grant"),
    email: str | None = typer.Option(None, "--email", help="Email for a new customer"),
):
    """Show or grant credits for a user.

    Examples:
        mingzi credits show u_123
        mingzi credits grant u_123 6 --email someone@example.com
    """
    out = Output(console=console, json_mode=get_json_mode())

    if action not in ("show", "grant"):
        out.error(f"Unknown action: {action}", suggestion="Valid actions: show, grant")
        raise typer.Exit(out.finish())
    if action == "grant" and (amount is None or amount <= 0):
        out.error("Grant amount must be a positive integer")
        raise typer.Exit(out.finish())

    config = get_config()
    try:
        with open_naming_db(config.db_path_resolved) as db:
            if action == "grant":
                balance = db.grant_credits(
                    user, amount, description="manual_grant", email=email
                )
                out.success(
                    f"Granted {amount} credits to {user} (balance {balance})",
                    user_id=user,
                    granted=amount,
                    credits=balance,
                )
            else:
                customer = db.get_customer(user)
                if customer is None:
                    out.error(f"No customer found for {user}")
                    raise typer.Exit(out.finish())
                out.success(
                    f"{user} has {customer.credits} credits",
                    user_id=user,
                    credits=customer.credits,
                )
                history = db.get_credit_history(user)
                out.table(
                    "History",
                    ["When", "Type", "Amount", "Description"],
                    [
                        [
                            str(h["created_at"]),
                            str(h["type"]),
                            str(h["amount"]),
                            str(h["description"] or ""),
                        ]
                        for h in history
                    ],
                )
    except PersistenceError as e:
        out.error(str(e), exit_code=ExitCode.STORAGE_ERROR)

    raise typer.Exit(out.finish())
