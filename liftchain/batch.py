"""Batch mapping of many positions or ranges.

Inputs are independent, so large batches are split into contiguous chunks
and mapped in a forked worker pool. Workers inherit the (read-only) chain
data from the parent; results come back in chunk order, aligned with the
inputs.
"""

import logging as _logging
import multiprocessing as _multiprocessing

from ._shared import CONFIG, _chunk_slices, _progress_context, _report

_logger = _logging.getLogger(__name__)

# Set in the parent right before forking; read by workers.
_WORKER_STATE = {}


def _worker_map(bounds):
    start, end = bounds
    liftover = _WORKER_STATE["liftover"]
    queries = _WORKER_STATE["queries"]
    method = getattr(liftover, _WORKER_STATE["method"])
    return [method(q) for q in queries[start:end]]


def _decide_parallel(n_queries, multitasking, num_cores):
    """Return ``(use_parallel, effective_cores)``.

    The worker count is *num_cores* (default: the CPU count), capped by
    ``CONFIG['max_processes']`` and by the batch size.
    """
    if multitasking is None:
        multitasking = CONFIG.get("multitasking", True)
    if not multitasking or n_queries < CONFIG.get("min_parallel_queries", 100000):
        return False, 1

    if num_cores is None:
        num_cores = _multiprocessing.cpu_count()
    cores = min(int(num_cores), CONFIG.get("max_processes", 20), n_queries)
    if cores <= 1:
        return False, 1
    return True, cores


def _run(liftover, queries, method, multitasking, num_cores, progress):
    queries = list(queries)
    n = len(queries)
    use_parallel, cores = _decide_parallel(n, multitasking, num_cores)

    if not use_parallel:
        results = []
        fn = getattr(liftover, method)
        with _progress_context(progress, total=n, desc="Lifting") as cb:
            for i, q in enumerate(queries):
                results.append(fn(q))
                if cb is not None and (i + 1) % 1000 == 0:
                    _report(cb, i + 1, n)
            _report(cb, n, n)
        return results

    chunk_size = -(-n // cores)
    slices = _chunk_slices(n, chunk_size)
    _logger.info("Mapping %d queries with %d worker processes", n, len(slices))

    _WORKER_STATE.update(liftover=liftover, queries=queries, method=method)
    try:
        ctx = _multiprocessing.get_context("fork")
        results = []
        with _progress_context(progress, total=n, desc="Lifting") as cb:
            with ctx.Pool(processes=len(slices)) as pool:
                for chunk in pool.imap(_worker_map, slices):
                    results.extend(chunk)
                    _report(cb, len(results), n)
    finally:
        _WORKER_STATE.clear()
    return results


def map_positions(liftover, positions, multitasking=None, num_cores=None, progress=None):
    """Map many positions; one result list per input position, in input order.

    Parameters
    ----------
    liftover : Liftover or LiftoverIndexed
        The chain set to map through.
    positions : iterable of GenomePosition
    multitasking : bool, optional
        Override ``CONFIG['multitasking']``. Parallel mapping only kicks in for
        batches of at least ``CONFIG['min_parallel_queries']`` inputs.
    num_cores : int, optional
        Worker count before capping at ``CONFIG['max_processes']`` and the
        batch size. Defaults to the CPU count. One worker means in-process.
    progress : bool, str or callable, optional
        Progress reporting; see ``CONFIG['progress']``.

    Returns
    -------
    list of list of GenomePosition
    """
    return _run(liftover, positions, "map", multitasking, num_cores, progress)


def map_ranges(liftover, ranges, multitasking=None, num_cores=None, progress=None):
    """Map many ranges; one fragment list per input range, in input order.

    See :func:`map_positions` for the parameters.
    """
    return _run(liftover, ranges, "map_range", multitasking, num_cores, progress)
