"""
Package for HTTP authentication of requests.

Each scheme module (``basic``, ``digest``) provides middleware that
guards a WSGI application: the request is checked by the scheme, and
only authenticated requests reach the application.  Everything else
receives a 401 response built by ``authgate.errorpage``.

The challenge/response mechanics themselves are provided by
``wsgitools``; this package adapts them and decides what the failure
responses look like.
"""
