"""
rdcli - command-line client for Raindrop.io

Formats API responses as JSON, TSV, tables, styled plain text or trees, and
wraps every API call with retry, backoff and rate-limit handling.

Example Usage:
    >>> from rdcli import RdcliConfig, RaindropClient, output, OutputOptions
    >>> config = RdcliConfig.load()
    >>> client = RaindropClient(config)
    >>> output(client.tags(), [ColumnConfig("_id", "Tag")], OutputOptions(format="tsv"))
"""

__version__ = "1.0.0"

# Configuration
from rdcli.config import RdcliConfig

# Errors
from rdcli.errors import (
    RdcliError,
    ConfigError,
    UsageError,
    ApiError,
    RateLimitError,
    ApiTimeoutError,
    handle_error,
)

# Output
from rdcli.output import ColumnConfig, OutputFormat, OutputOptions, output, output_tree
from rdcli.tree import TreeItem, TreeNode, build_tree, render_tree

# HTTP
from rdcli.resilience import setup_client_interceptors, calculate_backoff, classify
from rdcli.client import RaindropClient

__all__ = [
    # Config
    "RdcliConfig",
    # Errors
    "RdcliError",
    "ConfigError",
    "UsageError",
    "ApiError",
    "RateLimitError",
    "ApiTimeoutError",
    "handle_error",
    # Output
    "ColumnConfig",
    "OutputFormat",
    "OutputOptions",
    "output",
    "output_tree",
    "TreeItem",
    "TreeNode",
    "build_tree",
    "render_tree",
    # HTTP
    "setup_client_interceptors",
    "calculate_backoff",
    "classify",
    "RaindropClient",
]
