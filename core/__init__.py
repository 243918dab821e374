# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL the logic behind the spheron_operation tool:
# the data models, argument validation, YAML resolution, the Spheron client
# and the error taxonomy.
#
# ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP.  The only protocol-level type
#   used here is McpError (in core/errors.py), which is how classified
#   failures are handed to the tool layer.  Everything else is plain Python
#   that can be exercised with a fake SDK and no network.
# =============================================================================
