# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Small filesystem, path and hashing helpers shared across subsystems."""
