import os.path

import pytest

from authgate.util.import_string import eval_import, simple_import
from authgate.auth import digest

def test_simple():
    assert simple_import('os.path.join') is os.path.join
    assert simple_import('authgate.auth.digest') is digest
    assert (simple_import('authgate.auth.digest.digest_password')
            is digest.digest_password)

def test_complex():
    assert eval_import('authgate.auth.digest:digest_password') is \
        digest.digest_password
    lookup = eval_import(
        "authgate.auth.basic:basic_secret_lookup('john', 'hello')")
    assert lookup('john', 'realm').startswith('{SHA}')

def test_missing():
    with pytest.raises(ImportError):
        simple_import('authgate.auth.digest.no_such_thing')
    with pytest.raises(ImportError):
        eval_import('authgate.no_such_module:thing')
