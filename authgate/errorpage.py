# (c) 2016 AuthGate contributors
# This module is part of the AuthGate Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
"""
401 Unauthorized Pages

This module decides what a client sees when it fails to authenticate.
The content is described by one of four payload classes:

``TitledBody(title, body)``
    A title and an HTML fragment, placed into a small HTML page.

``RawFile(content_type, body)``
    Pre-rendered content (bytes) sent with its own content type, such
    as a static ``401.html`` read from disk or an image.

``RawHTML(html)``
    A complete HTML document sent as-is.

``Default()``
    The stock "401 Unauthorized" page.

``render_failure`` turns any of those (or, for convenience, a plain
string or anything else) into a WSGI application which writes the
401 response when it is called:

>>> app = render_failure(TitledBody('Nope', '<p>go away</p>'))
>>> from authgate.wsgilib import raw_interactive
>>> status, headers, body, errors = raw_interactive(app)
>>> status
'401 Unauthorized'
>>> b'<title>Nope</title>' in body
True
"""

import mimetypes

__all__ = ['TitledBody', 'RawFile', 'RawHTML', 'Default', 'DEFAULT',
           'HTML401', 'classify', 'render_failure', 'payload_from_conf']

U_MIMETYPE = 'application/octet-stream'

HTML401 = ('<!DOCTYPE html><html><head><meta charset="utf-8">'
           '<meta name="viewport" content="initial-scale=1,width=device-width">'
           '<title>%s</title><body>%s</body></html>')

HTML_CONTENT_TYPE = 'text/html; charset=utf-8'

STATUS = '401 Unauthorized'


class FailurePayload(object):
    """
    Base class for the content of a 401 response.

    Subclasses implement ``content()``, returning a ``(content_type,
    body)`` pair where ``body`` is bytes.
    """

    def content(self):
        raise NotImplementedError

    def __setattr__(self, name, value):
        raise AttributeError("%s is immutable" % self.__class__.__name__)

    def _set(self, **kw):
        for name, value in kw.items():
            object.__setattr__(self, name, value)

    def __eq__(self, other):
        return (self.__class__ is other.__class__ and
                self.__dict__ == other.__dict__)

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((self.__class__, tuple(sorted(self.__dict__.items()))))


class TitledBody(FailurePayload):
    """
    A page title and body, rendered through ``HTML401``.  Neither is
    escaped; ``body`` is expected to be HTML.
    """

    def __init__(self, title, body):
        self._set(title=title, body=body)

    def content(self):
        html = HTML401 % (self.title, self.body)
        return HTML_CONTENT_TYPE, html.encode('utf-8')

    def __repr__(self):
        return '<TitledBody title=%r>' % self.title


class RawFile(FailurePayload):
    """
    Opaque content sent verbatim with ``content_type``.
    """

    def __init__(self, content_type, body):
        if not isinstance(body, bytes):
            raise TypeError("RawFile body must be bytes, not %r"
                            % type(body))
        self._set(content_type=content_type, body=body)

    def content(self):
        return self.content_type, self.body

    @classmethod
    def from_filename(cls, filename, content_type=None):
        """
        Reads ``filename``; the content type is guessed from its name
        unless given.
        """
        if content_type is None:
            content_type, encoding = mimetypes.guess_type(filename)
            content_type = content_type or U_MIMETYPE
        f = open(filename, 'rb')
        try:
            return cls(content_type, f.read())
        finally:
            f.close()

    def __repr__(self):
        return '<RawFile %s, %d bytes>' % (self.content_type, len(self.body))


class RawHTML(FailurePayload):
    """
    An HTML document sent verbatim; the caller is responsible for it
    being valid.
    """

    def __init__(self, html):
        self._set(html=html)

    def content(self):
        return HTML_CONTENT_TYPE, self.html.encode('utf-8')

    def __repr__(self):
        return '<RawHTML %d chars>' % len(self.html)


class Default(FailurePayload):
    """
    The stock page: ``401 Unauthorized`` as both title and heading.
    """

    title = '401 Unauthorized'
    body = '<h1>401 Unauthorized</h1>'

    def content(self):
        html = HTML401 % (self.title, self.body)
        return HTML_CONTENT_TYPE, html.encode('utf-8')

    def __repr__(self):
        return '<Default>'

DEFAULT = Default()


def classify(value):
    """
    Map ``value`` onto a payload.  Payload instances are returned
    unchanged; a ``str`` is taken as raw HTML; anything else
    (including ``None``) gives the default page.
    """
    if isinstance(value, TitledBody):
        return value
    if isinstance(value, RawFile):
        return value
    if isinstance(value, str):
        return RawHTML(value)
    if isinstance(value, FailurePayload):
        return value
    return DEFAULT


def render_failure(payload=None):
    """
    Returns a WSGI application which writes a 401 response for
    ``payload`` (see ``classify``).  The page is built here, once; the
    application only sends it.
    """
    content_type, body = classify(payload).content()
    headers = [('Content-Type', content_type),
               ('Content-Length', str(len(body)))]

    def failure_application(environ, start_response):
        start_response(STATUS, list(headers))
        if environ.get('REQUEST_METHOD', 'GET').upper() == 'HEAD':
            return []
        return [body]
    return failure_application


def payload_from_conf(failure_title=None, failure_body=None,
                      failure_html=None, failure_file=None,
                      failure_content_type=None):
    """
    Builds a payload from configuration options; the first of
    ``failure_file``, ``failure_html`` and ``failure_title`` /
    ``failure_body`` that is set wins.
    """
    if failure_file:
        return RawFile.from_filename(failure_file,
                                     failure_content_type or None)
    if failure_html:
        return RawHTML(failure_html)
    if failure_title or failure_body:
        return TitledBody(failure_title or Default.title,
                          failure_body or Default.body)
    return DEFAULT


if __name__ == '__main__':
    import doctest
    doctest.testmod(optionflags=doctest.ELLIPSIS)
