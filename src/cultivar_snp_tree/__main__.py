"""
Main entry point for the cultivar SNP phylogeny pipeline.

This allows the package to be run as a module:
python -m cultivar_snp_tree
"""

from .cli_main import cli

if __name__ == '__main__':
    cli()
