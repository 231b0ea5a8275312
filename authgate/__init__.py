"""
HTTP Basic and Digest authentication middleware for WSGI applications,
with customizable 401 pages.
"""

__version__ = '0.1'
