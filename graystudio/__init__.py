"""
GrayStudio: raster editing core with GrayBit-7 support.

Workflow:
    1. Engine.load_image() - decode PNG/JPEG/GB7 into the base layer
    2. add_layer() / apply_curves() / apply_filter() - edit the layer stack
    3. composite - flattened result, rebuilt on every stack change
    4. resize() - optional resampling of the composite
    5. export() - PNG, JPEG or GB7 bytes
"""

__version__ = "1.0.0"
