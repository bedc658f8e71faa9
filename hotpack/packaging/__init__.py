# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Archive creation and the aggregate package index."""
