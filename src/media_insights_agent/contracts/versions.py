"""
Версии контрактов.
"""

HTTP_API_VERSION = "v1"
