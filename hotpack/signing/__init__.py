# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Key generation, manifest signing and signature verification."""
