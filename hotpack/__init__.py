# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
hotpack - build-time packager for React Native hot updates.

Turns a project into per-platform bundles, content-hashed manifests,
optionally signed, and distributable archives.
"""

__version__ = "0.3.0"
