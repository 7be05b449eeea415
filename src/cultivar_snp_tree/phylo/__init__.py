"""Phylogenetic tree building."""

from .tree_builder import TreeBuilder

__all__ = ["TreeBuilder"]
