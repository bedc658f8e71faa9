# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Post-build tooling for an output directory.

Inspects what a build produced (validation, size comparison), scans
platform trees for leaked key material before they are archived, and
removes build artifacts. Nothing here runs the bundler.
"""
