"""
Per-particle random streams and thread fan-out.

Every unit of particle work gets its own numpy Generator seeded from a JAX
PRNG key, so a run is reproducible for a given key whatever the execution
order or the number of worker threads.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence

import jax
import jax.numpy as jnp
import numpy as np
from jax import random
import logging

logger = logging.getLogger(__name__)


def resolve_key(key=None) -> jnp.ndarray:
    """
    Normalize the user-supplied key.

    Args:
        key: A JAX PRNG key, an integer seed, or None (seed 0)

    Returns:
        A JAX PRNG key
    """
    if key is None:
        return random.PRNGKey(0)
    if isinstance(key, (int, np.integer)):
        return random.PRNGKey(int(key))
    return key


def _key_bits(keys: jnp.ndarray) -> np.ndarray:
    """Raw uint32 words behind one key or a batch of keys."""
    if jnp.issubdtype(keys.dtype, jax.dtypes.prng_key):
        keys = random.key_data(keys)
    return np.asarray(keys, dtype=np.uint32)


def particle_streams(key, n_streams: int) -> List[np.random.Generator]:
    """
    Derive independent numpy generators from a single key.

    Args:
        key: JAX PRNG key (typically already folded with a generation index)
        n_streams: Number of generators

    Returns:
        List of n_streams generators; stream i depends only on (key, i)
    """
    if n_streams == 0:
        return []
    bits = _key_bits(random.split(key, n_streams))
    return [np.random.default_rng(row.tolist()) for row in bits]


def generation_key(key, generation: int):
    """Key for one generation of a sampler run."""
    return random.fold_in(key, generation)


def run_particles(
    fn: Callable[[int, np.random.Generator], Any],
    indices: Sequence[int],
    streams: Sequence[np.random.Generator],
    parallel: bool = False,
    n_workers: Optional[int] = None,
) -> List[Any]:
    """
    Apply fn(index, rng) to every particle index.

    Each call must only write the slot belonging to its index. With
    parallel=True the calls run on a thread pool; results are returned in
    the order of indices either way and worker exceptions are re-raised.

    Args:
        fn: Work function for one particle
        indices: Particle indices to process
        streams: One generator per entry of indices
        parallel: Enable thread fan-out
        n_workers: Maximum number of threads (executor default when None)

    Returns:
        List of fn results
    """
    indices = [int(i) for i in indices]
    if len(indices) != len(streams):
        raise ValueError(
            f"Got {len(streams)} random streams for {len(indices)} particles"
        )
    if not parallel or len(indices) <= 1:
        return [fn(i, rng) for i, rng in zip(indices, streams)]

    logger.debug(f"Dispatching {len(indices)} particles to thread pool")
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        return list(executor.map(fn, indices, streams))


__all__ = [
    "resolve_key",
    "particle_streams",
    "generation_key",
    "run_particles",
]
