"""Tests for app.services.email_render — escaping and plain-text → HTML."""
import pytest

from app.services.email_render import escape_html, sanitize_url, text_to_html


class TestEscapeHtml:

    def test_escapes_markup(self):
        out = escape_html('<script>alert("x")</script> & \'q\'')
        assert '<script>' not in out
        assert '&lt;script&gt;' in out
        assert '&amp;' in out
        assert '"' not in out
        assert "'" not in out

    def test_none_is_empty(self):
        assert escape_html(None) == ''


class TestSanitizeUrl:

    @pytest.mark.parametrize('url', [
        'javascript:alert(1)',
        ' JavaScript:alert(1)',
        'data:text/html;base64,AAAA',
        'ftp://files.example.com',
        '',
        None,
    ])
    def test_rejects_non_http(self, url):
        assert sanitize_url(url) == '#'

    def test_keeps_https(self):
        assert sanitize_url(' https://khanect.com#contact ') == 'https://khanect.com#contact'

    def test_escapes_quotes_in_url(self):
        out = sanitize_url('https://x.com/?a="><script>')
        assert '"' not in out
        assert '<script>' not in out


class TestTextToHtml:

    def test_paragraphs_and_line_breaks(self):
        html = text_to_html('Hi Jane,\nthanks.\n\nSecond paragraph.')
        assert '<p>Hi Jane,<br>thanks.</p>' in html
        assert '<p>Second paragraph.</p>' in html

    def test_body_script_is_escaped(self):
        html = text_to_html('Hello <script>steal()</script>')
        assert '<script>' not in html
        assert '&lt;script&gt;steal()&lt;/script&gt;' in html

    def test_cta_with_javascript_url_is_neutralized(self):
        html = text_to_html('Body', cta_text='Book <b>now</b>', cta_url='javascript:alert(1)')
        assert 'href="#"' in html
        assert 'javascript:' not in html
        assert '&lt;b&gt;now&lt;/b&gt;' in html

    def test_cta_rendered_with_safe_url(self):
        html = text_to_html('Body', cta_text='Book a demo', cta_url='https://khanect.com#contact')
        assert 'href="https://khanect.com#contact"' in html
        assert 'Book a demo' in html

    def test_no_cta_without_url(self):
        html = text_to_html('Body', cta_text='Book a demo')
        assert '<a ' not in html

    def test_footer_present(self):
        assert 'Khanect Automation Agency' in text_to_html('Body')
