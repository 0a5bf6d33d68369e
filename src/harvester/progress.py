"""
Terminal progress bars for file downloads.

`FileProgress` is a `ProgressFunc` for `BundleMaterializer`: it keeps one
tqdm bar for the file currently being written and replaces it when the next
file starts.
"""

from __future__ import annotations

from typing import Optional, TextIO

from tqdm import tqdm


class FileProgress:
    """
    Usage:
        progress = FileProgress()
        materializer = BundleMaterializer(..., on_progress=progress)
        ...
        progress.close()
    """

    def __init__(self, *, file: Optional[TextIO] = None, leave: bool = False) -> None:
        self._file = file
        self._leave = leave
        self._bar: Optional[tqdm] = None
        self._name: Optional[str] = None
        self._done = 0

    @property
    def current(self) -> Optional[tqdm]:
        return self._bar

    def __call__(self, name: str, done: int, total: Optional[int]) -> None:
        # A restarted download of the same file reports a smaller count.
        if self._bar is None or name != self._name or done < self._done:
            self.close()
            self._bar = tqdm(
                total=total,
                desc=name,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                leave=self._leave,
                file=self._file,
            )
            self._name = name
            self._done = 0

        self._bar.update(done - self._done)
        self._done = done
        if total is not None and done >= total:
            self.close()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
        self._bar = None
        self._name = None
        self._done = 0
