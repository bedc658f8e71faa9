# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI exit codes.

A build exits with FAILURE when any platform, or the packaging step, failed.
argparse itself exits with USAGE_ERROR on bad arguments, so commands use the
same code for usage problems they detect themselves.
"""

SUCCESS: int = 0
FAILURE: int = 1
USAGE_ERROR: int = 2
