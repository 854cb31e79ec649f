"""
EngineLib - Algorithm dispatch and image processing flows

This module holds the algorithm registry, the image codec boundary,
batch processing and the engine context object for the Open Dither project.
"""

from OD_Libs.EngineLib.algorithm_registry import (
    AlgorithmRegistry,
    create_default_registry,
    register_default_algorithms,
)
from OD_Libs.EngineLib.image_io import (
    DecodeError,
    get_supported_formats,
    is_supported_format,
    load_pixel_buffer,
    save_pixel_buffer,
    normalize_save_format,
    output_extension,
    processed_output_path,
    export_output_path,
)
from OD_Libs.EngineLib.batch_processor import (
    BatchConfig,
    ConfigParseError,
    parse_batch_config,
    find_batch_config,
    process_batch,
)
from OD_Libs.EngineLib.dither_engine import DitherEngine, DitherEngineConfig

__all__ = [
    "AlgorithmRegistry",
    "create_default_registry",
    "register_default_algorithms",
    "DecodeError",
    "get_supported_formats",
    "is_supported_format",
    "load_pixel_buffer",
    "save_pixel_buffer",
    "normalize_save_format",
    "output_extension",
    "processed_output_path",
    "export_output_path",
    "BatchConfig",
    "ConfigParseError",
    "parse_batch_config",
    "find_batch_config",
    "process_batch",
    "DitherEngine",
    "DitherEngineConfig",
]
