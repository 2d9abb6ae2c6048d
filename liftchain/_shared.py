"""
Shared globals and utilities for liftchain modules.

Thread-safety note:
`CONFIG` is process-global and not synchronized for concurrent mutation.
Change it from a single controlling thread before dispatching work.
"""

import sys as _sys
from contextlib import contextmanager

# Configuration dictionary
CONFIG = {
    'multitasking': True,           # Allow parallel batch mapping
    'max_processes': 20,            # Max workers for multitasking
    'min_parallel_queries': 100000, # Batches smaller than this run in-process
    'progress': False,              # False, True, 'tqdm', 'rich', 'text', or callable
    'progress_style': 'rich'        # Style used when progress=True
}


# Each factory returns (callback, close); callbacks take (done, total, pct).

def _tqdm_progress(total, desc):
    from tqdm.auto import tqdm
    bar = tqdm(total=total, desc=desc)

    def cb(done, total, pct):
        bar.total = total
        bar.n = int(done)
        bar.refresh()

    return cb, bar.close


def _rich_progress(total, desc):
    from rich.progress import Progress
    display = Progress()
    display.start()
    task = display.add_task(desc or "working", total=total)

    def cb(done, total, pct):
        display.update(task, total=total, completed=done)

    return cb, display.stop


def _text_progress(total, desc):
    label = desc or "progress"
    shown = []

    def cb(done, total, pct):
        if shown and shown[-1] == pct:
            return
        shown.append(pct)
        _sys.stderr.write(f"\r{label}: {pct}%" + ("\n" if pct >= 100 else ""))
        _sys.stderr.flush()

    return cb, None


_PROGRESS_STYLES = {
    'tqdm': _tqdm_progress,
    'rich': _rich_progress,
    'text': _text_progress,
}


def _make_progress_callback(progress, total=None, desc=None):
    """Resolve a ``progress`` argument into ``(callback, close)``.

    A missing tqdm/rich install degrades to the text display.
    """
    if progress is None:
        progress = CONFIG.get('progress', False)
    if not progress:
        return None, None
    if callable(progress):
        return progress, None

    style = CONFIG.get('progress_style', 'rich') if progress is True else progress
    if style not in _PROGRESS_STYLES:
        raise ValueError(
            f"Unknown progress style {style!r}; expected one of {sorted(_PROGRESS_STYLES)}"
        )
    try:
        return _PROGRESS_STYLES[style](total, desc)
    except ImportError:
        return _text_progress(total, desc)


@contextmanager
def _progress_context(progress=None, total=None, desc=None):
    cb, close = _make_progress_callback(progress, total=total, desc=desc)
    try:
        yield cb
    finally:
        if close:
            close()


def _report(cb, done, total):
    """Forward a progress tick to *cb* (if any) with an integer percentage."""
    if cb is None:
        return
    pct = 100 if not total else int(done * 100 / total)
    cb(done, total, pct)


def _chunk_slices(n, chunk_size):
    if chunk_size is None or chunk_size <= 0 or chunk_size >= n:
        return [(0, n)]
    return [(i, min(i + chunk_size, n)) for i in range(0, n, chunk_size)]
