# ruff: noqa: I001
"""CLI for the ``wise_together`` package.

This module exposes callable command handlers (``cmd_*``, each returning a
process exit code) and a Typer-based console interface on top of them.
Environment variables (notably ``DATABASE_URL``) are loaded from a local
``.env`` using ``python-dotenv`` before any command runs. Business logic lives
in ``wise_together.api`` and the core modules; handlers only parse options,
call into them and print.

The acting member is given with ``--user`` (or ``WT_USER_ID``); there is no
authentication layer.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import bind_member, configure_logging


@dataclass(slots=True)
class CliState:
    database_url: str | None = None
    use_cache: bool = True


def _store(state: CliState):
    from .store import SqlStore

    return SqlStore(database_url=state.database_url)


def _directory(state: CliState, store):
    if not state.use_cache:
        return store
    from .cache import CachedDirectory

    return CachedDirectory(store)


def _err(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


# ---- Command handlers ----------------------------------------------------------


def cmd_summary(state: CliState, user: str) -> int:
    from .api import load_dashboard
    from .normalizers import format_amount

    store = _store(state)
    try:
        dash = load_dashboard(store, _directory(state, store), user)
    except RuntimeError as e:
        _err(f"failed to load summary: {e}")
        return 1
    if dash.degraded:
        print(f"Warning: transactions unavailable: {dash.error}", file=sys.stderr)

    view = dash.view
    print(f"Personal total: {format_amount(view.personal_total)}")
    print(f"Shared total:   {format_amount(view.shared_total)}")
    if view.category_labels:
        print("By category:")
        for label, total in zip(view.category_labels, view.category_totals, strict=True):
            print(f"  {label:<16}{format_amount(total):>14}")

    if dash.account is not None:
        print(f"Shared with {dash.partner_name}:")
        for tx, row in zip(view.shared_transactions, view.reconciliations, strict=True):
            label = tx.description or tx.category or ""
            print(
                f"  {tx.date} {label}: {row.paid_label} {format_amount(row.paid_amount)}; "
                f"{row.owed_label} {format_amount(row.owed_amount)}"
            )
        if view.net_balance > 0:
            print(f"Net: {dash.partner_name} owes you {format_amount(view.net_balance)}")
        elif view.net_balance < 0:
            print(f"Net: you owe {dash.partner_name} {format_amount(-view.net_balance)}")
        else:
            print("Net: settled up")
    return 0


def cmd_list(state: CliState, user: str) -> int:
    from .normalizers import format_amount
    from .store import StoreError

    store = _store(state)
    try:
        account = _directory(state, store).find_shared_account_by_member(user)
        rows = store.list_transactions(user, account.id if account is not None else None)
    except (StoreError, RuntimeError) as e:
        _err(f"failed to list transactions: {e}")
        return 1

    for tx in rows:
        kind = f"shared:{tx.split.split_type}" if tx.split is not None else "personal"
        print(
            f"{tx.id}\t{tx.date}\t{format_amount(tx.amount)}\t{tx.category or ''}"
            f"\t{tx.description or ''}\t{kind}"
        )
    return 0


def _split_state(
    policy: str,
    amount: int | None,
    *,
    share_a: str | None,
    share_b: str | None,
):
    """Build an editor state from CLI options; returns ``(state, error)``."""

    from .models import Member, SplitType
    from .normalizers import parse_amount
    from .split_engine import edit_share, explain_rejection, new_split

    try:
        split_type = SplitType(policy.strip().lower())
    except ValueError:
        return None, f"unknown split policy {policy!r} (equal, percentage, custom)"

    state = new_split(split_type, amount)
    if share_a is not None and share_b is not None:
        return None, "give --share-a or --share-b, not both"
    member, raw = (Member.A, share_a) if share_a is not None else (Member.B, share_b)
    if raw is None:
        return state, None

    value: object = raw
    if split_type is SplitType.CUSTOM:
        # Custom shares are typed in major units like the amount itself
        try:
            value = parse_amount(raw)
        except ValueError:
            value = raw
    reason = explain_rejection(state, member, value)
    if reason is not None:
        return None, f"split: {reason}"
    return edit_share(state, member, value), None


def cmd_split_preview(amount_text: str, policy: str, share_a: str | None, share_b: str | None) -> int:
    from .normalizers import format_amount, parse_amount
    from .split_engine import currency_shares, is_balanced

    try:
        amount = parse_amount(amount_text)
    except ValueError as e:
        _err(str(e))
        return 1
    state, error = _split_state(policy, amount, share_a=share_a, share_b=share_b)
    if error is not None:
        _err(error)
        return 1

    a, b = currency_shares(state)
    print(f"Split: {state.policy} of {format_amount(amount)}")
    print(f"  member A: {format_amount(a)}")
    print(f"  member B: {format_amount(b)}")
    if not is_balanced(state):
        print("  (not balanced: shares must add up to the total)")
        return 1
    return 0


def cmd_add_expense(
    state: CliState,
    user: str,
    *,
    when: str,
    amount_text: str,
    category: str | None,
    description: str | None,
    policy: str | None,
    share_a: str | None,
    share_b: str | None,
) -> int:
    from .accounts import AccountError
    from .api import submit_transaction
    from .normalizers import format_amount, parse_amount
    from .store import StoreError
    from .validation import TransactionValidationError

    if category is None:
        from .term_ui import select_category

        category = select_category()

    split_state = None
    if policy is not None:
        try:
            amount = parse_amount(amount_text)
        except ValueError:
            amount = None
        if amount is None:
            # The validation gate reports the amount; shares cannot be applied yet
            share_a = share_b = None
        split_state, error = _split_state(policy, amount, share_a=share_a, share_b=share_b)
        if error is not None:
            _err(error)
            return 1

    form = {"date": when, "amount": amount_text, "category": category, "description": description}
    store = _store(state)
    try:
        tx = submit_transaction(
            store, _directory(state, store), form, viewer_id=user, split_state=split_state
        )
    except TransactionValidationError as e:
        for field, message in sorted(e.errors.items()):
            _err(f"{field}: {message}")
        return 1
    except AccountError as e:
        _err(str(e))
        return 1
    except (StoreError, RuntimeError) as e:
        _err(f"failed to save transaction: {e}")
        return 1

    kind = "shared" if tx.is_shared else "personal"
    print(f"Saved {kind} transaction {tx.id}: {format_amount(tx.amount)} {tx.category}")
    return 0


def cmd_delete(state: CliState, user: str, transaction_id: str) -> int:
    from .api import remove_transaction
    from .store import NotFoundError, StoreError

    store = _store(state)
    try:
        tx = store.get_transaction(transaction_id)
        if tx.owner_id != user:
            _err("you can only delete transactions you paid for")
            return 1
        remove_transaction(store, transaction_id)
    except NotFoundError:
        _err(f"transaction not found: {transaction_id}")
        return 1
    except (StoreError, RuntimeError) as e:
        _err(f"failed to delete transaction: {e}")
        return 1
    print(f"Deleted transaction {transaction_id}")
    return 0


def cmd_create_account(state: CliState, user: str) -> int:
    from db.client import session_scope
    from sqlalchemy.exc import SQLAlchemyError

    from .accounts import AccountError, create_shared_account, invitation_link
    from .store import StoreError

    try:
        with session_scope(database_url=state.database_url) as session:
            account = create_shared_account(session, member_id=user)
        _invalidate(state, user)
    except AccountError as e:
        _err(str(e))
        return 1
    except (SQLAlchemyError, StoreError, RuntimeError) as e:
        _err(f"failed to create shared account: {e}")
        return 1
    print(f"Created shared account {account.id}")
    print(f"Invite your partner: {invitation_link(account)}")
    return 0


def cmd_invite_link(state: CliState, user: str) -> int:
    from .accounts import AccountError, invitation_link
    from .store import StoreError

    store = _store(state)
    try:
        account = _directory(state, store).find_shared_account_by_member(user)
    except (StoreError, RuntimeError) as e:
        _err(f"failed to look up shared account: {e}")
        return 1
    if account is None:
        _err("you are not part of a shared account; run create-account first")
        return 1
    try:
        print(invitation_link(account))
    except AccountError as e:
        _err(str(e))
        return 1
    return 0


def cmd_join(state: CliState, user: str, code: str) -> int:
    from db.client import session_scope
    from sqlalchemy.exc import SQLAlchemyError

    from .accounts import AccountError, accept_invitation
    from .store import StoreError

    try:
        with session_scope(database_url=state.database_url) as session:
            account = accept_invitation(session, code=code, member_id=user)
        for member_id in account.members:
            _invalidate(state, member_id)
    except AccountError as e:
        _err(str(e))
        return 1
    except (SQLAlchemyError, StoreError, RuntimeError) as e:
        _err(f"failed to join shared account: {e}")
        return 1
    print(f"Joined shared account {account.id}")
    return 0


def cmd_set_profile(state: CliState, user: str, name: str, avatar_url: str | None) -> int:
    from .store import StoreError

    if not name.strip():
        _err("name is required")
        return 1
    try:
        _store(state).upsert_profile(user, name.strip(), avatar_url)
        _invalidate(state, user)
    except (StoreError, RuntimeError) as e:
        _err(f"failed to save profile: {e}")
        return 1
    print(f"Saved profile for {user}")
    return 0


def _invalidate(state: CliState, member_id: str) -> None:
    if state.use_cache:
        from .cache import CachedDirectory

        CachedDirectory(_store(state)).invalidate(member_id)


# ---- Typer app -----------------------------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Track personal and shared expenses for two partners. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
USER_OPTION: OptionInfo = typer.Option(
    ..., "--user", envvar="WT_USER_ID", help="Acting member id (or WT_USER_ID)."
)
SHARE_A_OPTION: OptionInfo = typer.Option(
    None, "--share-a", help="Member A's share: percent, or amount for custom splits."
)
SHARE_B_OPTION: OptionInfo = typer.Option(
    None, "--share-b", help="Member B's share: percent, or amount for custom splits."
)


def _state(ctx: typer.Context, user: str | None = None) -> CliState:
    bind_member(user)
    if isinstance(ctx.obj, CliState):
        return ctx.obj
    return CliState()


@app.command("summary")
def summary_cmd(ctx: typer.Context, user: str = USER_OPTION) -> None:
    """Totals, category breakdown and who owes whom."""

    raise typer.Exit(cmd_summary(_state(ctx, user), user))


@app.command("list")
def list_cmd(ctx: typer.Context, user: str = USER_OPTION) -> None:
    """Personal and shared transactions, newest first."""

    raise typer.Exit(cmd_list(_state(ctx, user), user))


@app.command("add-expense")
def add_expense_cmd(
    ctx: typer.Context,
    user: str = USER_OPTION,
    amount: str = typer.Option(..., help="Total in major units, e.g. 12.50."),
    when: str = typer.Option(
        "", "--date", help="Transaction date (YYYY-MM-DD). Defaults to today."
    ),
    category: str | None = typer.Option(
        None, help="Category; prompts interactively when omitted."
    ),
    description: str | None = typer.Option(None, help="Free-text note."),
    split: str | None = typer.Option(
        None, help="Share with your partner: equal, percentage or custom."
    ),
    share_a: str | None = SHARE_A_OPTION,
    share_b: str | None = SHARE_B_OPTION,
) -> None:
    """Record a personal expense, or a shared one with --split."""

    raise typer.Exit(
        cmd_add_expense(
            _state(ctx, user),
            user,
            when=when or date.today().isoformat(),
            amount_text=amount,
            category=category,
            description=description,
            policy=split,
            share_a=share_a,
            share_b=share_b,
        )
    )


@app.command("split-preview")
def split_preview_cmd(
    amount: str = typer.Option(..., help="Total in major units, e.g. 12.50."),
    split: str = typer.Option("equal", help="equal, percentage or custom."),
    share_a: str | None = SHARE_A_OPTION,
    share_b: str | None = SHARE_B_OPTION,
) -> None:
    """Show how a total would be divided, without saving anything."""

    raise typer.Exit(cmd_split_preview(amount, split, share_a, share_b))


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    transaction_id: str = typer.Argument(..., help="Id shown by the list command."),
    user: str = USER_OPTION,
) -> None:
    """Delete one of your transactions."""

    raise typer.Exit(cmd_delete(_state(ctx, user), user, transaction_id))


@app.command("create-account")
def create_account_cmd(ctx: typer.Context, user: str = USER_OPTION) -> None:
    """Create a shared account and print the invitation link."""

    raise typer.Exit(cmd_create_account(_state(ctx, user), user))


@app.command("invite-link")
def invite_link_cmd(ctx: typer.Context, user: str = USER_OPTION) -> None:
    """Print the invitation link of your shared account."""

    raise typer.Exit(cmd_invite_link(_state(ctx, user), user))


@app.command("join")
def join_cmd(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Invitation code from the link."),
    user: str = USER_OPTION,
) -> None:
    """Join a partner's shared account."""

    raise typer.Exit(cmd_join(_state(ctx, user), user, code))


@app.command("set-profile")
def set_profile_cmd(
    ctx: typer.Context,
    user: str = USER_OPTION,
    name: str = typer.Option(..., help="Full name; partners see the first word."),
    avatar_url: str | None = typer.Option(None, help="Optional avatar image URL."),
) -> None:
    """Set the name your partner sees."""

    raise typer.Exit(cmd_set_profile(_state(ctx, user), user, name, avatar_url))


@app.callback()
def _root(
    ctx: typer.Context,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Bypass the on-disk account/profile lookup cache."
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING or ERROR (or WISE_TOGETHER_LOG_LEVEL)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Shorthand for --log-level DEBUG."),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    try:
        configure_logging(log_level, verbose=verbose)
    except ValueError as e:
        _err(str(e))
        raise typer.Exit(2) from None

    ctx.obj = CliState(database_url=database_url, use_cache=not no_cache)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m wise_together.cli`
    app()
