# Copyright New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""TUF delegated path authorization
"""

# This value is used in the HTTP server version header.
# If updating version, also update it in setup.py
__version__ = "1.0.0"
