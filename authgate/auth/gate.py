# (c) 2016 AuthGate contributors
# This module is part of the AuthGate Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
"""
Authentication Gate

The scheme independent half of ``authgate.auth``.  A scheme (see
``basic`` and ``digest``) supplies an ``Authenticator``, which answers
one question for each request: is it authenticated?  The answer is a
``Verdict``.  ``AuthGate`` is the middleware that asks the question
before handing the request to the protected application:

0. The verdict's headers (a ``WWW-Authenticate`` challenge, or the
   digest ``Authentication-Info`` carrying the next nonce) are added
   to whatever response is sent, success or not.

1. If the request is not authenticated, the optional ``on_failure``
   callback is called, and then the 401 page from
   ``authgate.errorpage`` is sent.  The application is not called.

2. If it is, ``REMOTE_USER`` and ``AUTH_TYPE`` are set in the
   environment and the application's response is returned untouched.
"""

import binascii
import logging

from wsgitools.authentication import AuthenticationRequired, ProtocolViolation

from authgate.errorpage import render_failure
from authgate.response import remove_header

__all__ = ['AuthConfig', 'Verdict', 'Authenticator', 'AuthGate',
           'apply_headers']

log = logging.getLogger(__name__)


class AuthConfig(object):
    """
    Settings shared by every scheme.

    ``realm``
        Shown to the user in the challenge; names the set of
        credentials that apply.  Must not be empty.

    ``secret_lookup``
        ``secret_lookup(username, realm) -> secret``.  What the secret
        is depends on the scheme; an empty string means the user is
        unknown and authentication fails.
    """

    def __init__(self, realm, secret_lookup):
        if not isinstance(realm, str) or not realm:
            raise ValueError("A non-empty realm is required (got %r)"
                             % (realm,))
        if not callable(secret_lookup):
            raise TypeError("secret_lookup must be callable, not %r"
                            % (secret_lookup,))
        self.realm = realm
        self.secret_lookup = secret_lookup

    def __repr__(self):
        return '<%s realm=%r>' % (self.__class__.__name__, self.realm)


class Verdict(object):
    """
    The outcome of checking one request.

    ``headers`` is a list of ``(name, value)`` pairs which must be
    set on the response whatever the outcome; ``reason`` says why an
    unauthenticated request failed, for the logs.
    """

    def __init__(self, authenticated, user=None, headers=None, reason=None):
        self.authenticated = bool(authenticated)
        self.user = user
        self.headers = list(headers or [])
        self.reason = reason

    def __bool__(self):
        return self.authenticated

    def update_headers(self, headers):
        return apply_headers(headers, self.headers)

    def __repr__(self):
        if self.authenticated:
            return '<Verdict authenticated user=%r>' % self.user
        return '<Verdict failed: %s>' % self.reason


def apply_headers(headers, updates):
    """
    Sets each ``(name, value)`` of ``updates`` in the ``headers``
    list, replacing any headers of the same name.  Returns
    ``headers``.
    """
    for name, value in updates:
        remove_header(headers, name)
        headers.append((name, value))
    return headers


class Authenticator(object):
    """
    Adapts a ``wsgitools`` authentication middleware to a call/return
    interface.

    ``make_scheme(application)`` must build the ``wsgitools``
    middleware for this scheme around ``application``; every
    middleware it builds has to share the same credentials and state
    (the digest nonce store), since ``verdict_for`` and ``just_check``
    are meant to be used side by side.
    """

    def __init__(self, realm, make_scheme):
        self.realm = realm
        self.make_scheme = make_scheme
        self.scheme = make_scheme(None)

    @property
    def auth_type(self):
        return self.scheme.authorization_method

    def verdict_for(self, environ):
        """
        Checks the request's ``Authorization`` header.  Bad or missing
        credentials give a failing ``Verdict`` carrying the scheme's
        challenge; this never raises for anything the client sends.
        """
        try:
            auth = environ.get('HTTP_AUTHORIZATION')
            if not auth:
                raise AuthenticationRequired("no Authorization header found")
            try:
                method, rest = auth.split(' ', 1)
            except ValueError:
                method, rest = auth, ''
            if method.lower() != self.scheme.authorization_method:
                raise AuthenticationRequired(
                    "authorization method not implemented: %r" % method)
            try:
                result = self.scheme.authenticate(rest, environ)
            except (binascii.Error, UnicodeError) as exc:
                # wsgitools lets badly padded basic credentials through
                raise ProtocolViolation("failed to decode credentials: %s"
                                        % exc)
        except AuthenticationRequired as exc:
            reason = str(exc) or exc.__class__.__name__
            return Verdict(False, headers=[self.scheme.www_authenticate(exc)],
                           reason=reason)
        return Verdict(True, user=result['user'],
                       headers=result.get('outheaders', ()))

    def just_check(self, application):
        """
        Guards ``application`` with the scheme's own middleware, which
        sends its own challenge and 401 page.
        """
        return self.make_scheme(application)

    def __repr__(self):
        return '<%s %s realm=%r>' % (self.__class__.__name__,
                                     self.auth_type, self.realm)


class AuthGate(object):
    """
    Middleware which only lets authenticated requests through to
    ``application``.

    Parameters:

        ``authenticator``

            An ``Authenticator``; it is shared by every request passing
            through this middleware.

        ``payload``

            What unauthenticated clients get to see; anything accepted
            by ``authgate.errorpage.render_failure``.

        ``on_failure``

            Called without arguments for every unauthenticated request,
            before the 401 page is sent (to log, or slow down, password
            guessing).  Errors it raises are not caught.
    """

    def __init__(self, application, authenticator, payload=None,
                 on_failure=None):
        self.application = application
        self.authenticator = authenticator
        self.on_failure = on_failure
        self.failure_application = render_failure(payload)

    def __call__(self, environ, start_response):
        verdict = self.authenticator.verdict_for(environ)
        updates = verdict is not None and verdict.headers or []

        def replacement_start_response(status, headers, exc_info=None):
            headers = apply_headers(list(headers), updates)
            return start_response(status, headers, exc_info)

        if verdict is None or not verdict.authenticated:
            log.info("Authentication failed for %s (realm %r): %s",
                     environ.get('SCRIPT_NAME', '') + environ.get('PATH_INFO', ''),
                     self.authenticator.realm,
                     verdict is not None and verdict.reason or 'no verdict')
            if self.on_failure is not None:
                self.on_failure()
            return self.failure_application(environ,
                                            replacement_start_response)
        environ['AUTH_TYPE'] = self.authenticator.auth_type
        environ['REMOTE_USER'] = verdict.user
        log.debug("Authenticated %r (realm %r)", verdict.user,
                  self.authenticator.realm)
        return self.application(environ, replacement_start_response)
