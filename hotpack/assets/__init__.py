# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Asset enumeration and bundle/asset consistency checks."""
