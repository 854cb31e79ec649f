"""
OD_Libs - Open Dither Library Modules

This package contains core functionality for the Open Dither project,
organized into specialized sub-packages:

- DitherLib: Pixel buffer, threshold matrices and the dithering algorithms
- ScriptingLib: Sandboxed Lua scripting sessions bound to one pixel buffer
- EngineLib: Algorithm registry, image I/O, batch processing and the engine context
"""

__version__ = "0.1.0"
