# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Manifest assembly and canonical serialization."""
