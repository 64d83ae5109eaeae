"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
import click
from functools import wraps
from typing import Any, Generator

from .config import logger
from .errors import SUCCESS, INTERRUPTED, GuplError, get_exit_code_for_exception


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean JSON output on stdout (one object per line for generators)
    - Errors reported on stderr and as a JSON object on stdout
    - Exit codes taken from the error that occurred
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            output_result(func(*args, **kwargs))
            sys.exit(SUCCESS)
        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except GuplError as e:
            detail = e.detail() if hasattr(e, 'detail') else str(e)
            logger.error(detail)
            print(json.dumps({
                "error": str(e),
                "type": type(e).__name__,
                "exit_code": e.exit_code,
            }, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            print(json.dumps({
                "error": str(e),
                "type": type(e).__name__,
            }, ensure_ascii=False), flush=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


def output_result(result: Any):
    """
    Standard output handler for results.

    Args:
        result: The result to output (dict, list, generator or None)
    """
    if result is None:
        return
    if isinstance(result, (Generator, list, tuple)):
        for item in result:
            print(json.dumps(item, ensure_ascii=False), flush=True)
    elif isinstance(result, dict):
        print(json.dumps(result, ensure_ascii=False), flush=True)
    else:
        print(result, flush=True)
