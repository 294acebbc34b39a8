from __future__ import annotations

"""
Command Line Lexer, Parser and Renderer.

Turns raw command-line tokens into a CommandChain. The recognized operator
set is fixed: output redirection ('>', 'N>', '>>'), input redirection ('<'),
handle duplication ('N>&M'), and the chain operators '|', '&', '&&', '||'.
A control character preceded by '^' is literal text.

Scanning is done character by character, with the parse state (current
step, pending redirection) carried across the whole token stream. Parsing
never fails: malformed sequences degrade to literal text or are dropped.
"""

from typing import List, Optional, Sequence

from dirun.core.processing.variables import contains_variables
from dirun.domain.command_models import (
    HANDLE_COUNT,
    CommandChain,
    CommandStep,
    Continuation,
    Redirection,
    RedirectHandle,
)

# -----------------------------------------------------------------------------
# LEXICAL CONSTANTS
# -----------------------------------------------------------------------------

CONTROL_CHARS = "><|&"
ESCAPE_CHAR = "^"
DISCARD_TARGET = "NUL"
_DIGITS = "0123456789"

# ==============================================================================
# PUBLIC API
# ==============================================================================

def split_command_line(command: str) -> List[str]:
    """
    Split a single command string into arguments.

    Whitespace separates arguments except inside a '"' quoted run. Quotes are
    stripped from the resulting tokens; a doubled '""' inside a quoted run
    yields one literal '"'.

    Args:
        command: Raw command string.

    Returns:
        List[str]: The argument tokens.
    """
    tokens: List[str] = []
    buf: List[str] = []
    in_token = False
    quoted = False
    i = 0
    n = len(command)

    while i < n:
        c = command[i]
        if c == '"':
            in_token = True
            if quoted and i + 1 < n and command[i + 1] == '"':
                buf.append('"')
                i += 2
                continue
            quoted = not quoted
            i += 1
            continue

        if c.isspace() and not quoted:
            if in_token:
                tokens.append("".join(buf))
                buf = []
                in_token = False
            i += 1
            continue

        buf.append(c)
        in_token = True
        i += 1

    if in_token:
        tokens.append("".join(buf))

    return tokens


def parse_command(
        tokens: Sequence[str],
        begin: int = 0,
        end: Optional[int] = None
) -> CommandChain:
    """
    Parse pre-split arguments into a command chain.

    Args:
        tokens: Argument list, e.g. the remainder of sys.argv after '--'.
        begin: Index of the first token to parse.
        end: Index one past the last token to parse (default: len(tokens)).

    Returns:
        CommandChain: The parsed chain. Empty when no executable was found.
    """
    if end is None:
        end = len(tokens)

    ctx = _ParseContext()
    for token in tokens[begin:end]:
        _scan_token(ctx, token)
    ctx.complete_step(Continuation.TERMINATE)

    return CommandChain(steps=ctx.steps)


def parse_command_line(command: str) -> CommandChain:
    """Parse a single command string (see split_command_line)."""
    return parse_command(split_command_line(command))


def quote_if_needed(text: str) -> str:
    """
    Wrap an argument in double quotes when it would not survive re-splitting.

    Quoting is needed when the text has whitespace outside an already quoted
    run, or holds a variable marker whose value may contain whitespace.
    Embedded quotes are doubled.

    Args:
        text: Argument text.

    Returns:
        str: The text, quoted if required.
    """
    if not _needs_quotes(text):
        return text
    return '"' + text.replace('"', '""') + '"'


def render_command(chain: CommandChain) -> str:
    """
    Serialize a command chain back into a single, re-parseable string.

    Args:
        chain: The chain to render.

    Returns:
        str: Steps joined by their chain operators, redirections in handle order.
    """
    parts: List[str] = []
    for step in chain.steps:
        parts.append(quote_if_needed(escape_control_chars(step.path)))
        if step.args:
            parts.append(" ")
            parts.append(escape_control_chars(step.args))

        for index in range(HANDLE_COUNT):
            parts.append(_render_redirection(step.redirections[index], RedirectHandle(index)))

        if step.continuation != Continuation.TERMINATE:
            parts.append(f" {step.continuation.value} ")

    return "".join(parts).rstrip()


def escape_control_chars(text: str) -> str:
    """Prefix every control character with the escape character."""
    if not any(c in CONTROL_CHARS for c in text):
        return text
    return "".join(ESCAPE_CHAR + c if c in CONTROL_CHARS else c for c in text)


# ==============================================================================
# PARSER STATE
# ==============================================================================

class _ParseContext:
    """Mutable state shared by every token of one parse."""

    def __init__(self) -> None:
        self.steps: List[CommandStep] = []
        self.step: Optional[CommandStep] = None
        self.args: List[str] = []
        self.pending = Redirection()
        self.pending_from = RedirectHandle.NOT_SET

    def append_word(self, word: str) -> None:
        """Route a completed word to the path, the args or the pending redirection."""
        if not word:
            return

        if self.step is None:
            self.step = CommandStep(path=word)
        elif self.pending_from == RedirectHandle.NOT_SET:
            self.args.append(quote_if_needed(word))
        else:
            self.pending.target_handle = RedirectHandle.FILE
            self.pending.target_path = None if word.casefold() == DISCARD_TARGET.casefold() else word
            self.complete_pending_redirect()

    def open_redirect(self, source: RedirectHandle) -> None:
        self.pending = Redirection()
        self.pending_from = source

    def complete_pending_redirect(self) -> None:
        # First redirection of a handle wins
        if self.step is not None and self.pending_from != RedirectHandle.NOT_SET:
            slot = self.step.redirections[int(self.pending_from)]
            if not slot.is_set:
                slot.target_handle = self.pending.target_handle
                slot.target_path = self.pending.target_path
                slot.append = self.pending.append

        self.pending = Redirection()
        self.pending_from = RedirectHandle.NOT_SET

    def complete_step(self, continuation: Continuation) -> None:
        if self.step is not None:
            self.step.args = " ".join(self.args)
            self.step.continuation = continuation
            self.steps.append(self.step)

        self.step = None
        self.args = []
        self.pending = Redirection()
        self.pending_from = RedirectHandle.NOT_SET


# ==============================================================================
# LEXER
# ==============================================================================

def _scan_token(ctx: _ParseContext, token: str) -> None:
    """Scan one argument, emitting words and control operators into ctx."""
    word: List[str] = []
    i = 0
    n = len(token)

    def flush() -> None:
        ctx.append_word("".join(word))
        word.clear()

    while i < n:
        c = token[i]

        if c == ESCAPE_CHAR and i + 1 < n and token[i + 1] in CONTROL_CHARS:
            word.append(token[i + 1])
            i += 2
            continue

        if c not in CONTROL_CHARS:
            word.append(c)
            i += 1
            continue

        doubled = _is_doubled(token, i)

        if c == ">":
            if _has_digit_before(token, i) and word:
                source = RedirectHandle(int(word.pop()))
            else:
                source = RedirectHandle.STDOUT
            flush()
            ctx.open_redirect(source)
            if doubled:
                ctx.pending.append = True
                i += 2
            else:
                i += 1

        elif c == "<":
            flush()
            ctx.open_redirect(RedirectHandle.INPUT)
            i += 1

        elif c == "|":
            flush()
            ctx.complete_step(Continuation.IF_FAIL if doubled else Continuation.PIPE)
            i += 2 if doubled else 1

        else:
            if (_has_digit_after(token, i)
                    and not ctx.pending.append
                    and ctx.pending_from != RedirectHandle.NOT_SET):
                flush()
                ctx.pending.target_handle = RedirectHandle(int(token[i + 1]))
                ctx.complete_pending_redirect()
                i += 2
            elif doubled:
                flush()
                ctx.complete_step(Continuation.IF_PASS)
                i += 2
            else:
                flush()
                ctx.complete_step(Continuation.ALWAYS)
                i += 1

    flush()


def _is_doubled(token: str, i: int) -> bool:
    return i + 1 < len(token) and token[i + 1] == token[i]


def _has_digit_before(token: str, i: int) -> bool:
    """A digit right before position i, itself at the token start or after whitespace."""
    if i < 1 or token[i - 1] not in _DIGITS:
        return False
    return i == 1 or token[i - 2].isspace()


def _has_digit_after(token: str, i: int) -> bool:
    """A digit right after position i, followed by the token end or whitespace."""
    if i + 1 >= len(token) or token[i + 1] not in _DIGITS:
        return False
    return i + 2 == len(token) or token[i + 2].isspace()


# ==============================================================================
# RENDERING HELPERS
# ==============================================================================

def _needs_quotes(text: str) -> bool:
    if contains_variables(text):
        return True

    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == '"':
            close = text.find('"', i + 1)
            if close == -1:
                return False
            i = close + 1
            continue
        if c.isspace():
            return True
        i += 1
    return False


def _render_target(redirect: Redirection) -> str:
    if redirect.target_handle == RedirectHandle.FILE:
        if redirect.target_path is None:
            return DISCARD_TARGET
        return quote_if_needed(escape_control_chars(redirect.target_path))
    return f"&{int(redirect.target_handle)}"


def _render_redirection(redirect: Redirection, source: RedirectHandle) -> str:
    if not redirect.is_set:
        return ""
    if source == RedirectHandle.INPUT:
        return f" < {_render_target(redirect)}"
    operator = ">>" if redirect.append else ">"
    return f" {int(source)}{operator} {_render_target(redirect)}"
