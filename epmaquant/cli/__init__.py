"""
Command-line interface for epmaquant.

This module provides CLI tools for:
- Quantifying measured k-ratios from config files
- Simulating k-ratios for a known composition
"""

__all__ = []
