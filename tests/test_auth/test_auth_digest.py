# (c) 2016 AuthGate contributors
# This module is part of the AuthGate Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php

import hashlib
import os
from urllib.request import parse_http_list, parse_keqv_list

import pytest

from authgate.auth import digest
from authgate.auth.gate import Verdict
from authgate.errorpage import TitledBody
from authgate.response import header_value
from authgate.wsgilib import raw_interactive

realm = "tag:authgate,2016:testing"

def application(environ, start_response):
    content = environ.get('REMOTE_USER', '').encode('utf-8')
    start_response("200 OK", [('Content-Type', 'text/plain'),
                              ('Content-Length', str(len(content)))])
    return [content]

def backwords(username, realm):
    """ dummy password hash, where user password is just reverse """
    if username == 'nobody':
        return ''
    return digest.digest_password(username, realm, username[::-1])

def md5(text):
    return hashlib.md5(text.encode('utf-8')).hexdigest()

def response(challenge, username, password, path="/", method="GET",
             nc=1, cnonce="0a4f113b"):
    """ Build an authorization response for a given challenge. """
    (token, challenge) = challenge.split(' ', 1)
    assert token == 'Digest'
    chal = parse_keqv_list(parse_http_list(challenge))
    ha1 = md5("%s:%s:%s" % (username, chal['realm'], password))
    ha2 = md5("%s:%s" % (method, path))
    ncvalue = '%08x' % nc
    respdig = md5(":".join([ha1, chal['nonce'], ncvalue, cnonce,
                            'auth', ha2]))
    return ('Digest username="%s", realm="%s", nonce="%s", uri="%s", '
            'response="%s", algorithm="MD5", qop=auth, nc=%s, '
            'cnonce="%s"' % (username, chal['realm'], chal['nonce'], path,
                             respdig, ncvalue, cnonce))

def make_app(**kw):
    config = digest.DigestConfig(realm, backwords, **kw)
    return digest.digest_guard(config, application,
                               TitledBody('Nope', '<p>go away</p>'))

def check(app, username, password, path="/"):
    """ perform two-stage authentication to verify login """
    (status, headers, content, errors) = raw_interactive(app, path)
    assert status.startswith("401")
    challenge = header_value(headers, 'WWW-Authenticate')
    auth = response(challenge, username, password, path)
    (status, headers, content, errors) = \
        raw_interactive(app, path, HTTP_AUTHORIZATION=auth)
    if status.startswith("200"):
        return content
    if status.startswith("401"):
        return None
    assert False, "Unexpected Status: %s" % status

def test_digest():
    app = make_app()
    assert b'bing' == check(app, "bing", "gnib")
    assert check(app, "bing", "bad") is None
    assert check(app, "nobody", "ydobon") is None

def test_challenge():
    status, headers, content, errors = raw_interactive(make_app(), '/')
    assert status == '401 Unauthorized'
    challenge = header_value(headers, 'WWW-Authenticate')
    assert challenge.startswith('Digest ')
    chal = parse_keqv_list(parse_http_list(challenge.split(' ', 1)[1]))
    assert chal['realm'] == realm
    assert chal['qop'] == 'auth'
    assert chal['nonce']
    assert b'<title>Nope</title>' in content
    assert b'<p>go away</p>' in content

def test_failure_page_and_callback():
    failures = []
    config = digest.DigestConfig(realm, backwords)
    app = digest.digest_guard(config, application,
                              TitledBody('Nope', '<p>go away</p>'),
                              lambda: failures.append(1))
    status, headers, content, errors = raw_interactive(app, '/')
    challenge = header_value(headers, 'WWW-Authenticate')
    auth = response(challenge, 'bing', 'wrong')
    status, headers, content, errors = raw_interactive(
        app, '/', HTTP_AUTHORIZATION=auth)
    assert status == '401 Unauthorized'
    assert b'<title>Nope</title>' in content
    assert header_value(headers, 'WWW-Authenticate').startswith('Digest ')
    assert failures == [1, 1]

def test_success_sends_next_nonce():
    app = make_app()
    status, headers, content, errors = raw_interactive(app, '/')
    auth = response(header_value(headers, 'WWW-Authenticate'),
                    'bing', 'gnib')
    status, headers, content, errors = raw_interactive(
        app, '/', HTTP_AUTHORIZATION=auth)
    assert status == '200 OK'
    info = header_value(headers, 'Authentication-Info')
    assert 'nextnonce=' in info

def test_nonce_replay_is_refused():
    app = make_app()
    status, headers, content, errors = raw_interactive(app, '/')
    auth = response(header_value(headers, 'WWW-Authenticate'),
                    'bing', 'gnib')
    status, headers, content, errors = raw_interactive(
        app, '/', HTTP_AUTHORIZATION=auth)
    assert status == '200 OK'
    # same nonce count again
    status, headers, content, errors = raw_interactive(
        app, '/', HTTP_AUTHORIZATION=auth)
    assert status == '401 Unauthorized'

def test_wrong_scheme_and_garbage():
    app = make_app()
    for auth in ['Basic YmluZzpnbmli', 'Digest', 'Digest garbage',
                 'Digest username="bing"', '']:
        status, headers, content, errors = raw_interactive(
            app, '/', HTTP_AUTHORIZATION=auth)
        assert status == '401 Unauthorized'
        assert header_value(headers, 'WWW-Authenticate').startswith('Digest')

def test_verdict_for():
    authenticator = digest.DigestAuthenticator(
        digest.DigestConfig(realm, backwords))
    verdict = authenticator.verdict_for({'REQUEST_METHOD': 'GET',
                                         'SCRIPT_NAME': '',
                                         'PATH_INFO': '/'})
    assert isinstance(verdict, Verdict)
    assert not verdict.authenticated
    assert verdict.headers[0][0] == 'WWW-Authenticate'
    assert authenticator.auth_type == 'digest'

def test_check_only():
    config = digest.DigestConfig(realm, backwords)
    app = digest.digest_check_only(config, application)
    assert b'bing' == check(app, "bing", "gnib")
    status, headers, content, errors = raw_interactive(app, '/')
    assert status.startswith('401')
    assert b'<title>Nope</title>' not in content

def test_cache_defaults():
    store = digest.DigestConfig(realm, backwords).nonce_store()
    assert store.cache_size == digest.ClientNonceStore.cache_size == 1000
    assert store.cache_tolerance == digest.ClientNonceStore.cache_tolerance
    store = digest.DigestConfig(realm, backwords, cache_size=0,
                                cache_tolerance=-1).nonce_store()
    assert store.cache_size == 1000
    assert store.cache_tolerance == 100

def test_cache_overrides():
    config = digest.DigestConfig(realm, backwords, cache_size=5,
                                 cache_tolerance=2)
    store = config.nonce_store()
    assert store.cache_size == 5
    assert store.cache_tolerance == 2
    authenticator = digest.DigestAuthenticator(config)
    assert authenticator.noncestore.cache_size == 5

def test_cache_eviction():
    store = digest.ClientNonceStore(cache_size=3, cache_tolerance=2)
    first = store.newnonce()
    for i in range(2):
        store.newnonce()
    assert len(store) == 3
    store.newnonce()
    assert len(store) == 2
    assert not store.checknonce(first)

def test_nonce_settings():
    config = digest.DigestConfig(realm, backwords, nonce_maxage=60,
                                 nonce_maxuses=1)
    store = config.nonce_store()
    assert store.maxage == 60
    assert store.maxuses == 1
    with pytest.raises(ValueError):
        digest.DigestConfig(realm, backwords, nonce_maxage=0)
    with pytest.raises(ValueError):
        digest.DigestConfig(realm, backwords, cache_size='lots')

def test_token_generator():
    gentoken = digest.SecretTokenGenerator(realm, backwords)
    assert gentoken.realm == realm
    assert gentoken('bing') == digest.digest_password('bing', realm, 'gnib')
    assert gentoken('nobody') is None

def test_digest_password():
    assert (digest.digest_password('Mufasa', 'testrealm@host.com',
                                   'Circle Of Life')
            == '939e7578ed9e3c518a452acee763bce9')

htdigest_realm = "AuthGate testing"

def write_htdigest(tmpdir):
    filename = os.path.join(str(tmpdir), 'users.htdigest')
    ha1 = digest.digest_password('bing', htdigest_realm, 'gnib')
    with open(filename, 'w') as f:
        f.write('bing:%s:%s\n' % (htdigest_realm, ha1))
    return filename, ha1

def test_htdigest_lookup(tmpdir):
    filename, ha1 = write_htdigest(tmpdir)
    lookup = digest.htdigest_lookup(filename)
    assert lookup('bing', htdigest_realm) == ha1
    assert lookup('bing', 'other realm') == ''
    assert lookup('bong', htdigest_realm) == ''
    app = digest.digest_guard(digest.DigestConfig(htdigest_realm, lookup),
                              application)
    assert b'bing' == check(app, 'bing', 'gnib')
    assert check(app, 'bing', 'bad') is None

def test_make_digest_guard_htdigest(tmpdir):
    filename, ha1 = write_htdigest(tmpdir)
    app = digest.make_digest_guard(application, {}, htdigest_realm,
                                   htdigest=filename)
    assert b'bing' == check(app, 'bing', 'gnib')
    with pytest.raises(ValueError):
        digest.make_digest_guard(application, {}, realm, htdigest=filename)

def test_make_digest_guard(tmpdir):
    app = digest.make_digest_guard(
        application, {}, realm,
        secret_lookup=('authgate.auth.digest:'
                       'lambda u, r: digest_password(u, r, u[::-1])'),
        cache_size='10', failure_title='Nope', failure_body='<p>go away</p>')
    assert app.authenticator.noncestore.cache_size == 10
    status, headers, content, errors = raw_interactive(app, '/')
    assert b'<title>Nope</title>' in content
    assert b'bing' == check(app, 'bing', 'gnib')

def test_make_digest_guard_needs_one_source():
    with pytest.raises(ValueError):
        digest.make_digest_guard(application, {}, realm)
    with pytest.raises(ValueError):
        digest.make_digest_guard(application, {}, realm,
                                 secret_lookup='os:getcwd',
                                 htdigest='/etc/htdigest')

def test_example_scenario():
    def lookup(username, realm):
        if username == 'alice':
            return digest.digest_password('alice', realm, 'wonderland')
        return ''
    protected = []
    def handler(environ, start_response):
        protected.append(environ['REMOTE_USER'])
        start_response('200 OK', [('Content-Type', 'text/plain')])
        return [b'welcome']
    app = digest.digest_guard(digest.DigestConfig('test', lookup), handler,
                              TitledBody('Nope', '<p>go away</p>'))
    assert check(app, 'alice', 'wonderland') == b'welcome'
    assert protected == ['alice']
    status, headers, content, errors = raw_interactive(app, '/')
    auth = response(header_value(headers, 'WWW-Authenticate'),
                    'alice', 'looking-glass')
    status, headers, content, errors = raw_interactive(
        app, '/', HTTP_AUTHORIZATION=auth)
    assert status == '401 Unauthorized'
    assert b'<title>Nope</title>' in content
    assert b'<p>go away</p>' in content
    assert protected == ['alice']
