"""
Batch processing for Open Dither.

A batch is a set of paths holding one configuration file (``.txt``) and any
number of images. The configuration file contains two whitespace-separated
integers: the 0-based algorithm index and the colored flag (non-zero means
colored). Every image in the set is dithered and written next to the original
as ``<stem>_processed.png``.

A missing, unreadable or malformed configuration, or an algorithm index the
registry does not know, makes the batch a silent no-op: nothing is written and
nothing is raised.

Classes:
    BatchConfig: Parsed batch configuration
    ConfigParseError: Raised by parse_batch_config for malformed files

Functions:
    parse_batch_config: Parse one configuration file
    find_batch_config: Find and parse the configuration among a set of paths
    process_batch: Dither every image in a set of paths
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from OD_Libs.constants import BATCH_CONFIG_EXTENSION, PROCESSED_FILE_SUFFIX
from OD_Libs.EngineLib.algorithm_registry import AlgorithmRegistry
from OD_Libs.EngineLib.image_io import (
    DecodeError,
    is_supported_format,
    load_pixel_buffer,
    processed_output_path,
    save_pixel_buffer,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ConfigParseError(ValueError):
    """The batch configuration file is missing, unreadable or malformed."""


@dataclass(frozen=True)
class BatchConfig:
    """Configuration for a batch run.

    Attributes:
        algorithm_index: 0-based registry index of the algorithm to apply
        colored: Dither channels independently instead of grayscale
    """
    algorithm_index: int
    colored: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchConfig":
        """Create from dictionary."""
        return cls(
            algorithm_index=int(data["algorithm_index"]),
            colored=bool(data["colored"]),
        )

    def to_text(self) -> str:
        """Serialize in the configuration file format."""
        return f"{self.algorithm_index} {int(self.colored)}\n"


def parse_batch_config(config_path: PathLike) -> BatchConfig:
    """
    Parse a batch configuration file.

    Only the first two whitespace-separated tokens are read; anything after
    them is ignored.

    Args:
        config_path: Path to the ``.txt`` configuration

    Returns:
        The parsed BatchConfig

    Raises:
        ConfigParseError: If the file cannot be read or the tokens are not integers
    """
    path = Path(config_path)

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ConfigParseError(f"Cannot read batch configuration {path}: {str(e)}") from e

    return _parse_config_text(text, path)


def _parse_config_text(text: str, path: Path) -> BatchConfig:
    tokens = text.split()
    if len(tokens) < 2:
        raise ConfigParseError(
            f"Batch configuration {path} needs an algorithm index and a colored flag"
        )

    try:
        algorithm_index = int(tokens[0])
        colored = int(tokens[1])
    except ValueError as e:
        raise ConfigParseError(f"Batch configuration {path} is malformed: {str(e)}") from e

    return BatchConfig(algorithm_index=algorithm_index, colored=colored != 0)


def find_batch_config(paths: Iterable[PathLike]) -> Optional[BatchConfig]:
    """
    Find the batch configuration among a set of paths.

    The first ``.txt`` file that can be read is the configuration. Files that
    cannot be read are skipped. If the first readable one is malformed the
    search stops there and None is returned.

    Returns:
        The parsed configuration, or None if there is no usable one
    """
    for raw_path in paths:
        path = Path(raw_path)
        if path.suffix.lower() != BATCH_CONFIG_EXTENSION or not path.is_file():
            continue

        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Skipping unreadable batch configuration {path}: {e}")
            continue

        try:
            return _parse_config_text(text, path)
        except ConfigParseError as e:
            logger.debug(f"Ignoring batch configuration: {e}")
            return None

    return None


def process_batch(
    paths: Iterable[PathLike],
    registry: AlgorithmRegistry,
    config: Optional[BatchConfig] = None,
    suffix: str = PROCESSED_FILE_SUFFIX,
) -> List[Path]:
    """
    Dither every supported image in a set of paths.

    Args:
        paths: Image paths plus one configuration file
        registry: Registry the configured index is looked up in
        config: Use this configuration instead of searching the paths
        suffix: Suffix added to the output file stem

    Returns:
        Paths of the files written (empty when the configuration is unusable)
    """
    paths = [Path(path) for path in paths]

    if config is None:
        config = find_batch_config(paths)

    if config is None:
        logger.debug("No usable batch configuration found, nothing to do")
        return []

    if not registry.has_algorithm(config.algorithm_index):
        logger.debug(
            f"Batch algorithm index {config.algorithm_index} out of range, nothing to do"
        )
        return []

    algorithm_name = registry.get_name(config.algorithm_index)
    written: List[Path] = []

    for path in paths:
        if not is_supported_format(path):
            continue

        try:
            buffer = load_pixel_buffer(path)
        except DecodeError as e:
            logger.warning(f"Skipping {path}: {e}")
            continue

        registry.execute(config.algorithm_index, buffer, config.colored)

        output_path = processed_output_path(path, suffix)
        try:
            save_pixel_buffer(buffer, output_path)
        except OSError as e:
            logger.warning(f"Could not write {output_path}: {e}")
            continue

        written.append(output_path)
        logger.info(f"{algorithm_name}: {path.name} -> {output_path.name}")

    return written
