"""
WARNING: Do not modify this file.
"""

__all__ = [
    "__title__", "__summary__", "__version__", "__author__", "__email__", "__license__", "__copyright__"
]

__title__ = "taco-conditions"

__summary__ = "Access condition expression model for threshold access control."

__version__ = "0.1.0"

__author__ = "NuCypher"

__email__ = "dev@nucypher.com"

__license__ = "GNU Affero General Public License, Version 3"

__copyright__ = 'Copyright (C) 2024 NuCypher'
