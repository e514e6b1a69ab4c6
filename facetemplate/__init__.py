"""
Face templates from five-point landmarks

This package implements the template pipeline:
- Face detection using Haar Cascade
- 5-point landmarks from a 64x64 landmark network (or MediaPipe FaceMesh)
- Flip consistency check rejecting unreliable landmarks
- 1024-d descriptor: recognition network on the landmark crop and its mirror
- TPR @ FPR verification benchmark
"""

__version__ = "1.0.0"
