# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Per-platform build orchestration."""
