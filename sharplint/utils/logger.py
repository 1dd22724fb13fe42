"""Terminal-safe output with ASCII fallback for non-UTF-8 consoles.

Library components report recoverable problems through ``warn`` so the
message goes through the same sanitization as the CLI output.
"""
import sys
import locale
from typing import Callable


# Unicode to ASCII icon mapping for terminals without UTF-8
ICON_MAP = {
    # Status icons
    '✓': '[OK]',
    '✔': '[OK]',
    '✅': '[OK]',
    '✗': '[FAIL]',
    '✘': '[FAIL]',
    '❌': '[FAIL]',
    '⚠️': '[WARN]',
    '⚠': '[WARN]',
    '⚡': '[!]',

    # Arrows
    '→': '->',
    '←': '<-',
    '⇒': '=>',

    # Symbols
    '…': '...',
    '•': '*',
    '▸': '>',
    '\U0001f4c4': '[file]',
    '\U0001f50d': '[search]',
    '\U0001f4ca': '[stats]',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (LookupError, ValueError):
        pass

    return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)

    return sanitized


def create_safe_print() -> Callable:
    """Create a print function that automatically sanitizes output."""
    def safe_print(*args, **kwargs):
        """Print with automatic Unicode sanitization."""
        sanitized_args = [
            sanitize_for_terminal(arg) if isinstance(arg, str) else arg
            for arg in args
        ]
        print(*sanitized_args, **kwargs)

    return safe_print


safe_print = create_safe_print()


def warn(message: str):
    """Report a recoverable problem on stderr.

    Args:
        message: Text prefixed with the reporting component, e.g. ``[PolicyRegistry] ...``
    """
    safe_print(f"⚠ {message}", file=sys.stderr)
