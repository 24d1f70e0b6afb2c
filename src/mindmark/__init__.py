"""Bidirectional sync engine between mind map node trees and markdown."""

__version__ = "0.3.0"
