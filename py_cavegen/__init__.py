"""
py-cavegen: procedural cave maps and marching squares cave meshes.
"""

__version__ = "0.1.0"
