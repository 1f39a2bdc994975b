"""
Core pixel-processing modules.

This package contains the fundamental algorithms for:
- GB7 (GrayBit-7) decoding and encoding
- Colour conversion (sRGB, XYZ, Lab, LCH) and WCAG contrast
- Layer compositing with blend modes
- Nearest-neighbour and bilinear resampling
- Tone curves (histogram + LUT)
- Kernel convolution filters
"""
