# SPDX-License-Identifier: Apache-2.0
"""Visual PDF text editing engine."""

__version__ = "0.1.0"
