import functools
import gzip
import inspect
import logging
import logging.handlers
import os
import shutil
import sys
from gzip import GzipFile
from typing import Callable, ParamSpec, TypeVar

from .config import settings

logger = logging.getLogger("player_modal")
logger.setLevel(settings.log_level.upper())
formatter = logging.Formatter(
    "%(asctime)s %(levelname)s [%(module)s:%(funcName)s:%(lineno)d] %(message)s"
)


def rotator(source, dest):
    with open(source, "rb") as f_in:
        with gzip.open(dest + ".gz", "wb") as f_out:
            assert isinstance(f_out, GzipFile)
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


if settings.log_file is not None:
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file_handler = logging.handlers.TimedRotatingFileHandler(
        settings.log_file, when="midnight"
    )
    log_file_handler.setFormatter(formatter)
    log_file_handler.rotator = rotator
    logger.addHandler(log_file_handler)

log_stream_handler = logging.StreamHandler(sys.stdout)
log_stream_handler.setFormatter(formatter)
logger.addHandler(log_stream_handler)


P = ParamSpec("P")
R = TypeVar("R")


def log_exception(
    prefix: str = "",
    default_return: R | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to wrap a function with try-except and log exceptions.

    Used at the edges where the session hands control to collaborators it does
    not own (toast sinks, event handlers): their failures are logged and
    swallowed so a broken sink never breaks a state transition.

    Args:
        prefix: Optional prefix to prepend to the error message. Braces are
            substituted with the bound call arguments, e.g. "Toast {message}".
        default_return: Value returned when the wrapped function raises

    Usage:
        @log_exception("ToastSink")
        def show(message):
            ...
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        sig = inspect.signature(func)
        func_name = func.__qualname__

        def format_args_kwargs(args: tuple, kwargs: dict) -> tuple[dict, str]:
            try:
                bound = sig.bind(*args, **kwargs)
                bound.apply_defaults()
                params = ", ".join(f"{k}={v!r}" for k, v in bound.arguments.items())
                return bound.arguments, f"[{params}] " if params else ""
            except Exception as e:
                logger.warning(
                    f"Failed to bind arguments for function {func_name}: {e}",
                    stacklevel=4,  # format_args_kwargs -> report -> wrapper -> user code
                )
                parts = []
                if args:
                    parts.append(f"args={args!r}")
                if kwargs:
                    parts.append(f"kwargs={kwargs!r}")
                return {}, f"[{', '.join(parts)}] " if parts else ""

        def format_prefix(bound_args: dict) -> str:
            if not prefix:
                return ""
            if "{" in prefix and "}" in prefix:
                try:
                    return f"{prefix.format_map(bound_args)}: "
                except (KeyError, ValueError, AttributeError) as e:
                    logger.warning(
                        f"Failed to format prefix '{prefix}' with arguments: {e}",
                        stacklevel=4,  # format_prefix -> report -> wrapper -> user code
                    )
            return f"{prefix}: "

        def report(e: Exception, args: tuple, kwargs: dict) -> None:
            bound_args, args_str = format_args_kwargs(args, kwargs)
            logger.error(
                f"{args_str}{format_prefix(bound_args)}{type(e).__name__}: {e}",
                exc_info=True,
                stacklevel=3,
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    report(e, args, kwargs)
                    return default_return  # type: ignore[return-value]

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                report(e, args, kwargs)
                return default_return  # type: ignore[return-value]

        return sync_wrapper  # type: ignore[return-value]

    return decorator
