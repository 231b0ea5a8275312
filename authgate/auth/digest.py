# (c) 2016 AuthGate contributors
# This module is part of the AuthGate Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
# Parts derived from paste.auth.digest, (c) 2005 Clark C. Evans
"""
HTTP Digest Authentication (RFC 2617)

Guards a WSGI application with ``Digest`` authentication.  The
challenge/response exchange and nonce bookkeeping are done by
``wsgitools.digest``; this module configures it and plugs it into
``authgate.auth.gate.AuthGate``.

The secret lookup for digest returns the HA1 of a user, that is the
hex MD5 of ``username:realm:password``; ``digest_password`` computes
it.  It is recommended that the HA1 is stored (in a database, or an
Apache ``htdigest`` file), not the password itself.

>>> def lookup(username, realm):
...     if username == 'john':
...         return digest_password(username, realm, 'hello')
...     return ''
>>> config = DigestConfig('This page needs authentication', lookup)
>>> from authgate.errorpage import TitledBody
>>> from authgate.wsgilib import raw_interactive
>>> def serve(environ, start_response):
...     start_response('200 OK', [('Content-Type', 'text/plain')])
...     return [b"it's ok"]
>>> app = digest_guard(config, serve,
...                    TitledBody('401 Unauthorized',
...                               '<h1>This page needs authentication</h1>'))
>>> status, headers, body, errors = raw_interactive(app, '/')
>>> status
'401 Unauthorized'
"""

import hashlib
import logging
import threading

from paste.deploy.converters import asint
from passlib.apache import HtdigestFile
from wsgitools.digest import (AbstractTokenGenerator, AuthDigestMiddleware,
                              MemoryNonceStore)

from authgate.auth.gate import AuthConfig, Authenticator, AuthGate
from authgate.errorpage import payload_from_conf
from authgate.util.import_string import eval_import

__all__ = ['DigestConfig', 'ClientNonceStore', 'SecretTokenGenerator',
           'DigestAuthenticator', 'digest_password', 'htdigest_lookup',
           'digest_guard', 'digest_check_only', 'make_digest_guard']

log = logging.getLogger(__name__)


def digest_password(username, realm, password):
    """ Constructs the appropriate hashcode needed for HTTP Digest """
    a1 = "%s:%s:%s" % (username, realm, password)
    return hashlib.md5(a1.encode('utf-8')).hexdigest()


def htdigest_lookup(filename):
    """
    A secret lookup reading an Apache ``htdigest`` file; the file is
    re-read when it changes.
    """
    htdigest = HtdigestFile(filename)
    lock = threading.Lock()
    def lookup(username, realm):
        lock.acquire()
        try:
            htdigest.load_if_changed()
            secret = htdigest.get_hash(username, realm)
        finally:
            lock.release()
        if isinstance(secret, bytes):
            secret = secret.decode('ascii')
        return secret or ''
    return lookup


class ClientNonceStore(MemoryNonceStore):
    """
    In-memory nonce store holding at most ``cache_size`` outstanding
    nonces.  When a new nonce takes it over the limit, the oldest
    ``cache_tolerance`` nonces are dropped; clients still using one
    of them get a fresh challenge marked ``stale``.

    Unlike ``MemoryNonceStore`` it may be shared between threads.
    """

    cache_size = 1000
    cache_tolerance = 100

    def __init__(self, maxage=300, maxuses=5, cache_size=None,
                 cache_tolerance=None):
        MemoryNonceStore.__init__(self, maxage, maxuses)
        if cache_size and cache_size > 0:
            self.cache_size = cache_size
        if cache_tolerance and cache_tolerance > 0:
            self.cache_tolerance = cache_tolerance
        self.lock = threading.Lock()

    def newnonce(self, ident=None):
        self.lock.acquire()
        try:
            nonce = MemoryNonceStore.newnonce(self, ident)
            if len(self.nonces) > self.cache_size:
                # nonces are kept in order of creation
                del self.nonces[:self.cache_tolerance]
            return nonce
        finally:
            self.lock.release()

    def checknonce(self, nonce, count=1, ident=None):
        self.lock.acquire()
        try:
            return MemoryNonceStore.checknonce(self, nonce, count, ident)
        finally:
            self.lock.release()

    def __len__(self):
        return len(self.nonces)


class SecretTokenGenerator(AbstractTokenGenerator):
    """
    Token generator for ``wsgitools`` backed by a secret lookup.
    """

    def __init__(self, realm, secret_lookup):
        AbstractTokenGenerator.__init__(self, realm)
        self.secret_lookup = secret_lookup

    def __call__(self, username, algo="md5"):
        return self.secret_lookup(username, self.realm) or None


class DigestConfig(AuthConfig):
    """
    Digest settings; see ``AuthConfig`` for ``realm`` and
    ``secret_lookup``.

    ``cache_size``, ``cache_tolerance``
        Bounds of the nonce store (see ``ClientNonceStore``).  Only
        values above zero are used, otherwise the store's defaults
        apply.

    ``nonce_maxage``, ``nonce_maxuses``
        How many seconds, and for how many requests, a nonce stays
        valid.
    """

    def __init__(self, realm, secret_lookup, cache_size=0,
                 cache_tolerance=0, nonce_maxage=300, nonce_maxuses=5):
        AuthConfig.__init__(self, realm, secret_lookup)
        self.cache_size = int(cache_size or 0)
        self.cache_tolerance = int(cache_tolerance or 0)
        self.nonce_maxage = int(nonce_maxage)
        self.nonce_maxuses = int(nonce_maxuses)
        if self.nonce_maxage <= 0 or self.nonce_maxuses <= 0:
            raise ValueError(
                "nonce_maxage and nonce_maxuses must be positive "
                "(got %r and %r)" % (nonce_maxage, nonce_maxuses))

    def nonce_store(self):
        """ Builds a fresh nonce store with these settings """
        kw = {}
        if self.cache_size > 0:
            kw['cache_size'] = self.cache_size
        if self.cache_tolerance > 0:
            kw['cache_tolerance'] = self.cache_tolerance
        return ClientNonceStore(self.nonce_maxage, self.nonce_maxuses, **kw)


class DigestAuthenticator(Authenticator):
    """
    ``Authenticator`` for the ``Digest`` scheme.  One nonce store is
    created per authenticator and shared by all requests.
    """

    def __init__(self, config):
        self.config = config
        self.noncestore = config.nonce_store()
        self.gentoken = SecretTokenGenerator(config.realm,
                                             config.secret_lookup)
        Authenticator.__init__(self, config.realm, self.make_middleware)

    def make_middleware(self, application):
        return AuthDigestMiddleware(application, self.gentoken,
                                    store=self.noncestore)


def digest_guard(config, application, payload=None, on_failure=None):
    """
    Wraps ``application`` with digest authentication.

    ``payload`` is the 401 page sent on failure (see
    ``authgate.errorpage``), after ``on_failure()`` has been called if
    given.
    """
    return AuthGate(application, DigestAuthenticator(config),
                    payload=payload, on_failure=on_failure)


def digest_check_only(config, application):
    """
    Wraps ``application`` with digest authentication, using the
    stock challenge page of ``wsgitools``.
    """
    return DigestAuthenticator(config).just_check(application)


def make_digest_guard(app, global_conf, realm, secret_lookup=None,
                      htdigest=None, cache_size=0, cache_tolerance=0,
                      nonce_maxage=300, nonce_maxuses=5, on_failure=None,
                      failure_title=None, failure_body=None,
                      failure_html=None, failure_file=None,
                      failure_content_type=None):
    """
    Paste Deployment filter factory for ``digest_guard``::

        [filter:auth]
        use = egg:AuthGate#digest
        realm = My Application
        htdigest = %(here)s/users.htdigest
        failure_title = Access denied
        failure_body = <h1>Please log in</h1>

    ``secret_lookup`` (and ``on_failure``) are import strings like
    ``myapp.users:digest_lookup``; either it or ``htdigest`` must be
    given.
    """
    if bool(secret_lookup) == bool(htdigest):
        raise ValueError(
            "Exactly one of secret_lookup or htdigest must be configured")
    if secret_lookup:
        secret_lookup = eval_import(secret_lookup)
    elif ':' in realm:
        raise ValueError("An htdigest file cannot hold realm %r "
                         "(it contains ':')" % realm)
    else:
        secret_lookup = htdigest_lookup(htdigest)
    if on_failure:
        on_failure = eval_import(on_failure)
    config = DigestConfig(realm, secret_lookup,
                          cache_size=asint(cache_size),
                          cache_tolerance=asint(cache_tolerance),
                          nonce_maxage=asint(nonce_maxage),
                          nonce_maxuses=asint(nonce_maxuses))
    payload = payload_from_conf(failure_title, failure_body, failure_html,
                                failure_file, failure_content_type)
    log.debug("Digest authentication configured for realm %r", realm)
    return digest_guard(config, app, payload, on_failure or None)

middleware = digest_guard


if '__main__' == __name__:
    from wsgiref.simple_server import make_server
    realm = 'tag:authgate,2016:digest'
    def lookup(username, realm):
        # the password is the username, reversed
        return digest_password(username, realm, username[::-1])
    def hello(environ, start_response):
        start_response('200 OK', [('Content-Type', 'text/plain')])
        return [("Hello %s\n" % environ['REMOTE_USER']).encode('utf-8')]
    logging.basicConfig(level=logging.DEBUG)
    make_server('', 8080,
                digest_guard(DigestConfig(realm, lookup), hello)
                ).serve_forever()
