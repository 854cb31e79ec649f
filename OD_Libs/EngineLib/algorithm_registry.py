"""
Dithering Algorithm Registry.

This module provides an ordered registry of dithering algorithms. It is the
single dispatch point used by the engine, the batch processor and the command
line, so every caller runs algorithms through the same call path.

Algorithms are looked up by their position (0-based index, registration
order) or by name. The registry never gives an index special meaning.

Classes:
    AlgorithmRegistry: Ordered registry of dithering transforms

Functions:
    create_default_registry: Build a registry holding the built-in algorithms
    register_default_algorithms: Register all built-in algorithms
"""

from functools import partial
from typing import Any, Callable, Dict, List, Optional, Union
import logging

from OD_Libs.DitherLib.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

# Type alias for transform function: (buffer, colored) -> None
TransformFunction = Callable[[PixelBuffer, bool], None]
AlgorithmKey = Union[int, str]


class AlgorithmRegistry:
    """
    Ordered registry of dithering algorithms.

    Every transform has the uniform signature ``(buffer, colored) -> None``
    and mutates the buffer in place.

    Example:
        >>> registry = AlgorithmRegistry()
        >>> registry.register("Random", random_dither)
        >>> registry.register("Floyd-Steinberg", floyd_steinberg_dither)
        >>> registry.execute(1, buffer, colored=False)
        >>> registry.execute("Random", buffer, colored=True)
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._transforms: Dict[str, TransformFunction] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}

    def register(
        self,
        name: str,
        transform: TransformFunction,
        description: str = "",
        tags: Optional[List[str]] = None,
    ) -> int:
        """
        Register an algorithm at the end of the registry.

        Args:
            name: Unique display name (e.g., "Floyd-Steinberg")
            transform: Callable accepting (buffer, colored)
            description: Human-readable description
            tags: Optional list of tags for categorization (e.g., ["ordered"])

        Returns:
            The index assigned to the algorithm

        Raises:
            ValueError: If name is empty or transform is not callable
            RuntimeError: If name is already registered
        """
        name = str(name).strip()

        if not name:
            raise ValueError("name cannot be empty")

        if not callable(transform):
            raise ValueError(f"transform must be callable, got {type(transform)}")

        if name in self._transforms:
            raise RuntimeError(
                f"Algorithm '{name}' is already registered. "
                f"Use unregister() first to replace it."
            )

        self._transforms[name] = transform
        self._metadata[name] = {
            "description": str(description),
            "tags": list(tags) if tags else [],
        }

        index = len(self._transforms) - 1
        logger.debug(f"Registered algorithm {index}: {name}")
        return index

    def unregister(self, name: str) -> bool:
        """
        Unregister an algorithm. Later algorithms move down one index.

        Returns:
            True if unregistered, False if name was not registered
        """
        name = str(name).strip()

        if name in self._transforms:
            del self._transforms[name]
            del self._metadata[name]
            logger.debug(f"Unregistered algorithm: {name}")
            return True

        return False

    def _resolve_name(self, key: AlgorithmKey) -> str:
        if isinstance(key, bool):
            raise KeyError(f"Invalid algorithm key: {key!r}")

        if isinstance(key, int):
            names = self.list_algorithm_names()
            if not 0 <= key < len(names):
                raise KeyError(
                    f"Algorithm index {key} out of range. "
                    f"Valid indices: 0-{len(names) - 1}"
                )
            return names[key]

        name = str(key).strip()
        if name not in self._transforms:
            available = ", ".join(self.list_algorithm_names())
            raise KeyError(
                f"No algorithm registered as '{name}'. "
                f"Available algorithms: {available}"
            )
        return name

    def get_transform(self, key: AlgorithmKey) -> TransformFunction:
        """
        Get the transform registered under an index or name.

        Raises:
            KeyError: If key is not registered
        """
        return self._transforms[self._resolve_name(key)]

    def get_name(self, key: AlgorithmKey) -> str:
        """Get the display name for an index or name."""
        return self._resolve_name(key)

    def has_algorithm(self, key: AlgorithmKey) -> bool:
        try:
            self._resolve_name(key)
        except KeyError:
            return False
        return True

    def index_of(self, name: str) -> int:
        """
        Get the index of a registered algorithm.

        Raises:
            KeyError: If name is not registered
        """
        name = self._resolve_name(name)
        return self.list_algorithm_names().index(name)

    def execute(self, key: AlgorithmKey, buffer: PixelBuffer, colored: bool) -> None:
        """
        Run an algorithm on a buffer in place.

        Args:
            key: Algorithm index or name
            buffer: Pixel buffer to transform
            colored: Dither channels independently instead of grayscale

        Raises:
            KeyError: If key is not registered
        """
        transform = self.get_transform(key)
        transform(buffer, bool(colored))

    def list_algorithm_names(self) -> List[str]:
        """
        Get all registered algorithm names.

        Returns:
            Names in registration (index) order
        """
        return list(self._transforms.keys())

    def get_metadata(self, key: AlgorithmKey) -> Dict[str, Any]:
        """
        Get metadata for an algorithm.

        Returns:
            Dictionary with index, name, description, tags

        Raises:
            KeyError: If key is not registered
        """
        name = self._resolve_name(key)
        meta = dict(self._metadata[name])
        meta["name"] = name
        meta["index"] = self.list_algorithm_names().index(name)
        return meta

    def get_all_metadata(self) -> List[Dict[str, Any]]:
        """Get metadata for every algorithm, in index order."""
        return [self.get_metadata(index) for index in range(len(self))]

    def filter_by_tag(self, tag: str) -> List[str]:
        """
        Get all algorithm names with a specific tag.

        Returns:
            Names in index order
        """
        tag = str(tag).strip().lower()
        return [
            name
            for name, meta in self._metadata.items()
            if tag in [t.lower() for t in meta.get("tags", [])]
        ]

    def clear(self) -> None:
        """Clear all registered algorithms. Use with caution."""
        self._transforms.clear()
        self._metadata.clear()
        logger.warning("Algorithm registry cleared")

    def __len__(self) -> int:
        return len(self._transforms)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (int, str)) and self.has_algorithm(key)


def register_default_algorithms(registry: AlgorithmRegistry) -> None:
    """
    Register all built-in algorithms.

    This function registers, in index order:
    - Random
    - Ordered 2x2, 4x4, 8x8 and 16x16 Bayer matrix
    - Floyd-Steinberg

    Args:
        registry: The registry to register algorithms with
    """
    from OD_Libs.constants import (
        ALGORITHM_RANDOM,
        ALGORITHM_ORDERED_2X2,
        ALGORITHM_ORDERED_4X4,
        ALGORITHM_ORDERED_8X8,
        ALGORITHM_ORDERED_16X16,
        ALGORITHM_FLOYD_STEINBERG,
    )
    from OD_Libs.DitherLib.dither_algorithms import (
        random_dither,
        ordered_dither,
        floyd_steinberg_dither,
    )
    from OD_Libs.DitherLib.threshold_matrix import (
        BAYER_2X2,
        BAYER_4X4,
        BAYER_8X8,
        BAYER_16X16,
    )

    registry.register(
        name=ALGORITHM_RANDOM,
        transform=random_dither,
        description="Random threshold per channel (wall-clock seeded, non-deterministic)",
        tags=["random", "threshold"],
    )

    for name, matrix in (
        (ALGORITHM_ORDERED_2X2, BAYER_2X2),
        (ALGORITHM_ORDERED_4X4, BAYER_4X4),
        (ALGORITHM_ORDERED_8X8, BAYER_8X8),
        (ALGORITHM_ORDERED_16X16, BAYER_16X16),
    ):
        registry.register(
            name=name,
            transform=partial(ordered_dither, matrix=matrix),
            description=f"Ordered dithering with a {matrix.size}x{matrix.size} Bayer matrix",
            tags=["ordered", "bayer", "threshold"],
        )

    registry.register(
        name=ALGORITHM_FLOYD_STEINBERG,
        transform=floyd_steinberg_dither,
        description="Floyd-Steinberg error diffusion",
        tags=["error-diffusion"],
    )

    logger.info("Registered default dithering algorithms")


def create_default_registry() -> AlgorithmRegistry:
    """
    Create a new registry holding the built-in algorithms.

    Returns:
        A fresh AlgorithmRegistry; callers own it
    """
    registry = AlgorithmRegistry()
    register_default_algorithms(registry)
    return registry
