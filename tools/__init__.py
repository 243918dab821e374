# =============================================================================
# tools/__init__.py
# =============================================================================
# This package is the MCP-facing side of the server.
#
# ARCHITECTURAL ROLE:
#   tools/ is the "translation layer" between the MCP protocol and core/:
#     - dispatcher.py   validates arguments, picks the SpheronClient call,
#                       wraps the result, maps errors to protocol codes
#     - mcp_server.py   the FastMCP server and the `spheron_operation` tool
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT talk to the Spheron SDK directly (that's core/spheron.py)
#   - They do NOT read the environment (main.py builds and passes config)
# =============================================================================
