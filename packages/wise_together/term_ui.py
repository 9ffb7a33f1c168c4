"""Tiny terminal UI helpers (prompt_toolkit-based).

Interactive pickers used by the CLI when a value is not given as an option.
They are kept apart from the command handlers so they can be tested with a
pipe input and a dummy output.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .models import CATEGORIES, SplitType
from .validation import CATEGORY_REQUIRED


class _PrefixSuggest(AutoSuggest):
    """Grey inline completion of the first option starting with the typed text."""

    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        match = _best_prefix_match(self._vocab, document.text)
        if match is None:
            return None
        return Suggestion(match[len(document.text) :])


class _ChoiceValidator(Validator):
    def __init__(self, options: Sequence[str], message: str) -> None:
        self._allowed = {o.lower() for o in options}
        self._message = message

    def validate(self, document) -> None:
        if document.text.strip().lower() not in self._allowed:
            raise ValidationError(message=self._message)


def _best_prefix_match(options: Sequence[str], text: str) -> str | None:
    if not text:
        return None
    lower = text.lower()
    for o in options:
        ol = o.lower()
        if ol == lower:
            return None
        if ol.startswith(lower):
            return o
    return None


def _select_one(
    options: Sequence[str],
    *,
    default: str,
    message: str,
    error_message: str,
    session: PromptSession | None,
) -> str:
    kb = KeyBindings()

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        cand = _best_prefix_match(options, b.document.text)
        if cand:
            b.insert_text(cand[len(b.document.text) :])
        elif b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            cand = _best_prefix_match(options, b.document.text)
            if cand:
                b.insert_text(cand[len(b.document.text) :])
        b.validate_and_handle()

    if session is None:
        sess: PromptSession = PromptSession(key_bindings=kb)
    else:
        sess = PromptSession(
            input=getattr(session, "input", None),
            output=getattr(session, "output", None),
            key_bindings=kb,
        )

    value = sess.prompt(
        message,
        default=default,
        completer=WordCompleter(list(options), ignore_case=True, match_middle=True),
        auto_suggest=_PrefixSuggest(options),
        validator=_ChoiceValidator(options, error_message),
        validate_while_typing=False,
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
    )
    # Normalize to the canonical spelling
    canonical = {o.lower(): o for o in options}
    return canonical[value.strip().lower()]


def select_category(
    categories: Iterable[str] = CATEGORIES,
    *,
    default: str = "",
    message: str = "Category (Tab to complete, Enter to accept): ",
    session: PromptSession | None = None,
) -> str:
    """Prompt until one of ``categories`` is chosen and return it.

    Matching is case-insensitive; a unique prefix is completed on Enter.
    """

    return _select_one(
        list(categories),
        default=default,
        message=message,
        error_message=CATEGORY_REQUIRED,
        session=session,
    )


def select_split_policy(
    *,
    default: str = SplitType.EQUAL.value,
    message: str = "Split (equal / percentage / custom): ",
    session: PromptSession | None = None,
) -> SplitType:
    return SplitType(
        _select_one(
            [s.value for s in SplitType],
            default=default,
            message=message,
            error_message="Choose equal, percentage or custom",
            session=session,
        )
    )


__all__ = [
    "select_category",
    "select_split_policy",
]
