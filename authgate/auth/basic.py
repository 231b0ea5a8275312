# (c) 2016 AuthGate contributors
# This module is part of the AuthGate Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
"""
Basic HTTP Authentication

Guards a WSGI application with ``Basic`` authentication.  Credentials
travel base64-encoded, not encrypted, so only use this over HTTPS or
when you need to work with clients that cannot do ``digest``.

The secret lookup for basic returns a password *hash* in one of the
formats Apache ``htpasswd`` writes (``{SHA}``, ``$apr1$``, ``$1$`` or
bcrypt); the password sent by the client is checked against it with
``passlib``.  ``basic_secret_lookup`` builds a lookup for a single
fixed user:

>>> lookup = basic_secret_lookup('john', 'hello')
>>> lookup('john', 'any realm')
'{SHA}qvTGHdzF6KLavt4PO0gs2a6pQ00='
>>> lookup('jane', 'any realm')
''
>>> check_secret('hello', lookup('john', 'any realm'))
True
"""

import base64
import hashlib
import logging
import threading

from passlib.apache import HtpasswdFile
from passlib.context import CryptContext
from wsgitools.middlewares import BasicAuthMiddleware

from authgate.auth.gate import AuthConfig, Authenticator, AuthGate
from authgate.errorpage import payload_from_conf
from authgate.util.import_string import eval_import

__all__ = ['BasicConfig', 'BasicAuthenticator', 'basic_secret_lookup',
           'htpasswd_lookup', 'check_secret', 'basic_guard',
           'basic_check_only', 'make_basic_guard']

log = logging.getLogger(__name__)

secret_context = CryptContext(
    schemes=['ldap_sha1', 'apr_md5_crypt', 'md5_crypt', 'bcrypt'])


def check_secret(password, secret):
    """
    Does ``password`` match the stored ``secret``?  Empty secrets and
    secrets in a format we do not know never match.
    """
    if not secret:
        return False
    if secret_context.identify(secret) is None:
        log.warning("Unsupported password hash format; expected one of %s",
                    ', '.join(secret_context.schemes()))
        return False
    return secret_context.verify(password, secret)


def utf8_text(value):
    """
    Re-reads a latin-1 decoded string as UTF-8, which is what browsers
    send; strings that are not valid UTF-8 are returned unchanged.
    """
    try:
        return value.encode('latin-1').decode('utf-8')
    except UnicodeError:
        return value


def basic_secret_lookup(username, password):
    """
    A secret lookup knowing exactly one user.  Meant for tests and
    tiny deployments; anything else should look users up in a
    database or an ``htpasswd`` file (``htpasswd_lookup``).
    """
    digest = hashlib.sha1(password.encode('utf-8')).digest()
    secret = '{SHA}' + base64.b64encode(digest).decode('ascii')
    def lookup(user, realm):
        if user == username:
            return secret
        return ''
    return lookup


def htpasswd_lookup(filename):
    """
    A secret lookup reading an Apache ``htpasswd`` file; the file is
    re-read when it changes.
    """
    htpasswd = HtpasswdFile(filename)
    lock = threading.Lock()
    def lookup(username, realm):
        lock.acquire()
        try:
            htpasswd.load_if_changed()
            secret = htpasswd.get_hash(username)
        finally:
            lock.release()
        if isinstance(secret, bytes):
            secret = secret.decode('ascii')
        return secret or ''
    return lookup


class BasicConfig(AuthConfig):
    """
    Basic settings; see ``AuthConfig``.
    """


class BasicAuthenticator(Authenticator):
    """
    ``Authenticator`` for the ``Basic`` scheme.
    """

    def __init__(self, config):
        self.config = config
        Authenticator.__init__(self, config.realm, self.make_middleware)

    def check_password(self, username, password, environ=None):
        # wsgitools hands over the credentials decoded as latin-1
        username = utf8_text(username)
        password = utf8_text(password)
        secret = self.config.secret_lookup(username, self.config.realm)
        return check_secret(password, secret)

    def make_middleware(self, application):
        return BasicAuthMiddleware(application, self.check_password,
                                   realm=self.config.realm)


def basic_guard(config, application, payload=None, on_failure=None):
    """
    Wraps ``application`` with basic authentication.

    ``payload`` is the 401 page sent on failure (see
    ``authgate.errorpage``), after ``on_failure()`` has been called if
    given.
    """
    return AuthGate(application, BasicAuthenticator(config),
                    payload=payload, on_failure=on_failure)


def basic_check_only(config, application):
    """
    Wraps ``application`` with basic authentication, using the stock
    challenge page of ``wsgitools``.
    """
    return BasicAuthenticator(config).just_check(application)


def make_basic_guard(app, global_conf, realm, secret_lookup=None,
                     htpasswd=None, on_failure=None, failure_title=None,
                     failure_body=None, failure_html=None,
                     failure_file=None, failure_content_type=None):
    """
    Paste Deployment filter factory for ``basic_guard``::

        [filter:auth]
        use = egg:AuthGate#basic
        realm = My Application
        htpasswd = %(here)s/users.htpasswd
        failure_file = %(here)s/401.html

    ``secret_lookup`` (and ``on_failure``) are import strings like
    ``myapp.users:basic_lookup``; either it or ``htpasswd`` must be
    given.
    """
    if bool(secret_lookup) == bool(htpasswd):
        raise ValueError(
            "Exactly one of secret_lookup or htpasswd must be configured")
    if secret_lookup:
        secret_lookup = eval_import(secret_lookup)
    else:
        secret_lookup = htpasswd_lookup(htpasswd)
    if on_failure:
        on_failure = eval_import(on_failure)
    payload = payload_from_conf(failure_title, failure_body, failure_html,
                                failure_file, failure_content_type)
    log.debug("Basic authentication configured for realm %r", realm)
    return basic_guard(BasicConfig(realm, secret_lookup), app, payload,
                       on_failure or None)

middleware = basic_guard
