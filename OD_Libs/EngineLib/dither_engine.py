"""
Dither Engine for Open Dither.

The engine is the explicit context object an interactive front end works
through. It owns the loaded base image and the currently displayed result,
remembers which transform produced it and how long that took, and exports the
result next to the input file.

Selections follow the keyboard layout of the interactive tool: selection 0
restores the original image and selection ``n`` (1..len(registry)) applies
registry index ``n - 1``.

Classes:
    DitherEngineConfig: Configuration for the engine
    DitherEngine: Engine context object
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging
import re
import time

from OD_Libs.constants import (
    DEFAULT_EXPORT_NAME,
    DEFAULT_OUTPUT_FORMAT,
    EXPORT_NAME_PATTERN,
    PROCESSED_FILE_SUFFIX,
    TITLE_NONE,
    TITLE_SCRIPT,
)
from OD_Libs.DitherLib.dither_algorithms import prepare_buffer
from OD_Libs.DitherLib.pixel_buffer import PixelBuffer
from OD_Libs.EngineLib.algorithm_registry import (
    AlgorithmKey,
    AlgorithmRegistry,
    create_default_registry,
)
from OD_Libs.EngineLib.batch_processor import process_batch
from OD_Libs.EngineLib.image_io import (
    export_output_path,
    load_pixel_buffer,
    save_pixel_buffer,
)
from OD_Libs.ScriptingLib.script_session import run_script

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class DitherEngineConfig:
    """Configuration for engine exports.

    Attributes:
        output_suffix: Suffix for batch output files (default: _processed)
        export_name: Default output file name without extension (default: out)
        save_format: Image format to save as (default: PNG)
        overwrite: Overwrite existing export files (default: True)
    """
    output_suffix: str = PROCESSED_FILE_SUFFIX
    export_name: str = DEFAULT_EXPORT_NAME
    save_format: str = DEFAULT_OUTPUT_FORMAT
    overwrite: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DitherEngineConfig":
        """Create from dictionary, ignoring unknown keys."""
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)


class DitherEngine:
    """
    Engine context holding the loaded image and the current result.

    Example:
        >>> with DitherEngine() as engine:
        ...     engine.load_image("photo.png")
        ...     engine.select(6, colored=False)   # Floyd-Steinberg
        ...     engine.export("photo_fs")
    """

    def __init__(
        self,
        config: Optional[DitherEngineConfig] = None,
        registry: Optional[AlgorithmRegistry] = None,
    ):
        self.config = config or DitherEngineConfig()
        self.registry = registry if registry is not None else create_default_registry()

        self._base: Optional[PixelBuffer] = None
        self._displayed: Optional[PixelBuffer] = None
        self._source_dir: Optional[Path] = None
        self._title = TITLE_NONE
        self._execution_time = 0.0

    @property
    def has_image(self) -> bool:
        return self._base is not None

    @property
    def base(self) -> Optional[PixelBuffer]:
        return self._base

    @property
    def displayed(self) -> Optional[PixelBuffer]:
        return self._displayed

    @property
    def title(self) -> str:
        """Name of the transform that produced the displayed image."""
        return self._title

    @property
    def execution_time(self) -> float:
        """Duration of the last transform in seconds."""
        return self._execution_time

    def load_image(self, file_path: PathLike) -> None:
        """
        Load a new base image, replacing any previous one.

        Raises:
            DecodeError: If the image cannot be loaded; the previous image is kept
        """
        path = Path(file_path)
        buffer = load_pixel_buffer(path)

        self._base = buffer
        self._displayed = buffer.copy()
        self._source_dir = path.resolve().parent
        self._title = TITLE_NONE
        self._execution_time = 0.0
        logger.info(f"Loaded {path.name} ({buffer.width}x{buffer.height})")

    def _require_image(self) -> None:
        if self._base is None:
            raise RuntimeError("No image loaded")

    def restore_original(self) -> None:
        """Show the base image again."""
        self._require_image()
        self._displayed = self._base.copy()
        self._title = TITLE_NONE
        self._execution_time = 0.0

    def apply_algorithm(self, key: AlgorithmKey, colored: bool = False) -> float:
        """
        Apply a registry algorithm to a fresh copy of the base image.

        Args:
            key: Registry index or name
            colored: Dither channels independently instead of grayscale

        Returns:
            Execution time in seconds

        Raises:
            KeyError: If key is not registered
            RuntimeError: If no image is loaded
        """
        self._require_image()
        transform = self.registry.get_transform(key)
        name = self.registry.get_name(key)

        buffer = self._base.copy()
        start = time.perf_counter()
        transform(buffer, bool(colored))
        elapsed = time.perf_counter() - start

        self._displayed = buffer
        self._title = name
        self._execution_time = elapsed
        logger.info(f"{name} finished in {elapsed * 1000.0:.2f} ms")
        return elapsed

    def select(self, selection: int, colored: bool = False) -> bool:
        """
        Apply a selection from the interactive tool.

        Args:
            selection: 0 restores the original, n applies registry index n - 1
            colored: Dither channels independently instead of grayscale

        Returns:
            True if the selection did something, False if it was out of range
        """
        if not self.has_image:
            return False

        if selection == 0:
            self.restore_original()
            return True

        if not 1 <= selection <= len(self.registry):
            return False

        self.apply_algorithm(selection - 1, colored)
        return True

    def run_script(self, script_path: PathLike, colored: bool = True) -> Optional[str]:
        """
        Run a Lua script on a fresh copy of the base image.

        The result is displayed even when the script fails part way through.

        Args:
            script_path: Lua script defining ``Execute``
            colored: When False the grayscale pre-step runs before the script

        Returns:
            None on success, otherwise the error message to show the user
        """
        self._require_image()
        buffer = self._base.copy()
        prepare_buffer(buffer, colored)

        start = time.perf_counter()
        error = run_script(buffer, script_path)
        elapsed = time.perf_counter() - start

        self._displayed = buffer
        self._title = TITLE_SCRIPT
        self._execution_time = elapsed
        if error is None:
            logger.info(f"Script {Path(script_path).name} finished in {elapsed * 1000.0:.2f} ms")
        return error

    def process_batch(self, paths: Iterable[PathLike]) -> List[Path]:
        """
        Dither a set of images with the configuration file found among them.

        Works independently of the loaded image. See batch_processor.process_batch.

        Returns:
            Paths of the files written
        """
        return process_batch(paths, self.registry, suffix=self.config.output_suffix)

    def export(self, name: Optional[str] = None, directory: Optional[PathLike] = None) -> Path:
        """
        Save the displayed image as ``<directory>/<name>.<ext>``.

        The extension follows the configured save format (``.png`` by default).

        Args:
            name: File name without extension, letters, digits and '_' only
            directory: Output directory (default: the loaded image's directory)

        Returns:
            Path of the written file

        Raises:
            ValueError: If the name is invalid or the file exists and overwrite is off
            RuntimeError: If no image is loaded
            OSError: If the file cannot be written
        """
        self._require_image()
        name = self.config.export_name if name is None else name
        if not re.fullmatch(EXPORT_NAME_PATTERN, name):
            raise ValueError(f"Invalid export name '{name}': use letters, digits and '_'")

        output_dir = Path(directory) if directory is not None else self._source_dir
        output_path = export_output_path(output_dir, name, self.config.save_format)
        saved = save_pixel_buffer(
            self._displayed,
            output_path,
            save_format=self.config.save_format,
            overwrite=self.config.overwrite,
        )
        logger.info(f"Exported {saved}")
        return saved

    def close(self) -> None:
        """Release the loaded images."""
        self._base = None
        self._displayed = None
        self._source_dir = None
        self._title = TITLE_NONE
        self._execution_time = 0.0

    def __enter__(self) -> "DitherEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False
