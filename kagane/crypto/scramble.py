"""
Grid scramble mapping and chunk-level (un)scrambling.

The mapping is rebuilt from the page seed:
randomizer order -> reindexed through the dependency graph's topological
order -> (destination, source) chunk pairs. Scrambling itself is purely
positional and independent of the image format.
"""

import logging
from typing import List, Sequence, Tuple

from .graph import build_dependency_graph, topological_sort
from .kdf import derive_page_seed
from .randomizer import SeededRandomizer

logger = logging.getLogger(__name__)

DEFAULT_GRID_SIZE = 10

Mapping = List[Tuple[int, int]]


def build_scramble_mapping(order: Sequence[int], scramble_path: Sequence[int]) -> Mapping:
    """
    Combine the base permutation with the scramble path.

    Args:
        order: Base permutation from SeededRandomizer
        scramble_path: Topological order of the dependency graph

    Returns:
        List of (i, remapped[i]) pairs; ``order`` is used unchanged when the
        path does not cover every cell
    """
    total = len(order)
    remapped = list(order)
    if len(scramble_path) == total:
        remapped = [order[scramble_path[r]] for r in range(total)]
    return [(i, remapped[i]) for i in range(total)]


class Scrambler:
    """
    Regenerates the origin's scramble mapping for one seed.

    The randomizer, dependency graph and scramble path are built once in the
    constructor and never shared between pages.
    """

    def __init__(self, seed: int, grid_size: int = DEFAULT_GRID_SIZE):
        self.seed = seed
        self.grid_size = grid_size
        self.total_pieces = grid_size * grid_size
        self.randomizer = SeededRandomizer(seed, grid_size)
        self.dependency_graph = build_dependency_graph(seed, grid_size)
        self.scramble_path = topological_sort(self.dependency_graph)

    def get_scramble_mapping(self) -> Mapping:
        return build_scramble_mapping(self.randomizer.order, self.scramble_path)


def mapping_for_page(series_id: str, chapter_id: str, filename: str,
                     grid_size: int = DEFAULT_GRID_SIZE) -> Mapping:
    """
    Convenience function to compute the mapping for a page.

    Args:
        series_id: Series identifier
        chapter_id: Chapter identifier
        filename: Canonical page filename
        grid_size: Grid dimension

    Returns:
        Scramble mapping pairs
    """
    seed = derive_page_seed(series_id, chapter_id, filename)
    return Scrambler(seed, grid_size).get_scramble_mapping()


def _split_chunks(body: bytes, count: int, chunk_size: int) -> List[bytes]:
    return [body[i * chunk_size:(i + 1) * chunk_size] for i in range(count)]


def unscramble_chunks(data: bytes, mapping: Sequence[Tuple[int, int]], forward: bool = True) -> bytes:
    """
    Reassemble chunks of ``data`` according to a scramble mapping.

    The buffer is cut into len(mapping) equal chunks; the remainder forms a
    tail taken from the front (forward) or the back (backward) and is always
    appended to the output. Pairs referring to a chunk outside the grid are
    ignored.

    Args:
        data: Buffer to reassemble
        mapping: (e, m) pairs
        forward: True places chunk m at e; False places chunk e at m

    Returns:
        Reassembled buffer with the tail appended
    """
    pieces = len(mapping)
    if pieces == 0:
        return bytes(data)

    length = len(data)
    chunk_size = length // pieces
    remainder = length % pieces

    if forward:
        tail, body = data[:remainder], data[remainder:]
    else:
        tail, body = data[length - remainder:], data[:length - remainder]

    chunks = _split_chunks(body, pieces, chunk_size)
    output = [b''] * pieces
    for e, m in mapping:
        if e < pieces and m < pieces:
            if forward:
                output[e] = chunks[m]
            else:
                output[m] = chunks[e]

    return b''.join(output) + bytes(tail)


def scramble_chunks(data: bytes, mapping: Sequence[Tuple[int, int]]) -> bytes:
    """
    Scramble ``data`` the way the origin does before encryption.

    This is the exact inverse of ``unscramble_chunks(..., forward=True)``: the tail
    is cut from the back and moved to the front.

    Args:
        data: Image bytes
        mapping: Scramble mapping pairs

    Returns:
        Scrambled buffer of the same length
    """
    pieces = len(mapping)
    if pieces == 0:
        return bytes(data)

    length = len(data)
    chunk_size = length // pieces
    remainder = length % pieces

    body, tail = data[:length - remainder], data[length - remainder:]
    chunks = _split_chunks(body, pieces, chunk_size)
    output = [b''] * pieces
    for e, m in mapping:
        if e < pieces and m < pieces:
            output[m] = chunks[e]

    logger.debug(f"Scrambled {length} bytes into {pieces} chunks of {chunk_size}B")
    return bytes(tail) + b''.join(output)
