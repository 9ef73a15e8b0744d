"""
chromabox: browse and edit Chroma collections from the command line.
"""

__version__ = "0.3.0"
