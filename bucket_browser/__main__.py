"""Module entry point for the bucket browser application."""
import logging
import os

DEFAULT_LOG_LEVEL = logging.WARNING


def resolve_log_level(name: str | None) -> int:
    """Map a level name such as ``"debug"`` to its number, or WARNING if unknown."""
    level = logging.getLevelName((name or "").strip().upper())
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def main() -> None:
    logging.basicConfig(
        level=resolve_log_level(os.environ.get("BUCKET_BROWSER_LOG_LEVEL")),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    import tkinter as tk

    from .tk_view import BucketBrowserApp

    root = tk.Tk()
    BucketBrowserApp(root)
    root.mainloop()


if __name__ == "__main__":
    main()
