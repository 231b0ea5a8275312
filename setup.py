__version__ = "0.1"

from setuptools import setup, find_packages

setup(name="AuthGate",
      version=__version__,
      description="HTTP Basic and Digest authentication middleware for WSGI",
      long_description="""\
Middleware (or filters) that guard a Web Server Gateway Interface
application with HTTP authentication.  Each piece of middleware uses
the WSGI (`PEP 3333`_) interface, and should be compatible with other
middleware based on those interfaces.

.. _PEP 3333: https://www.python.org/dev/peps/pep-3333/

Includes these features...

Authentication
--------------

* ``Digest`` authentication (RFC 2617) in ``authgate.auth.digest``,
  with a bounded, thread safe nonce store

* ``Basic`` authentication in ``authgate.auth.basic``, checking
  passwords against ``htpasswd`` style hashes (``{SHA}``, ``$apr1$``,
  bcrypt)

* Secret lookups backed by Apache ``htpasswd`` and ``htdigest`` files

Error Pages
-----------

* Customizable 401 pages: a title and body in a stock template, a raw
  HTML document or a file, in ``authgate.errorpage``

* A callback for failed logins (to log, or slow down, guessing)

Configuration
-------------

* Paste Deployment filter factories, ``egg:AuthGate#digest`` and
  ``egg:AuthGate#basic``

The challenge/response mechanics are provided by `wsgitools`_.

.. _wsgitools: https://pypi.org/project/wsgitools/
""",
      classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
        "Topic :: Software Development :: Libraries :: Python Modules",
        ],
      keywords='web wsgi authentication digest basic middleware',
      license="MIT",
      packages=find_packages(exclude=['tests', 'tests.*']),
      zip_safe=False,
      python_requires='>=3.6',
      install_requires=[
        'wsgitools>=0.3',
        'passlib>=1.7',
        'PasteDeploy',
        ],
      extras_require={
        'testing': ['pytest'],
        },
      entry_points="""
      [paste.filter_app_factory]
      digest = authgate.auth.digest:make_digest_guard
      basic = authgate.auth.basic:make_basic_guard
      """,
      )
