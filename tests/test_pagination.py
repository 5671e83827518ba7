from blog_archive_scraper.pagination import page_number_from_url, resolve_last_page
from blog_archive_scraper.render import RenderedPage

from conftest import BASE, LISTING_URL, listing_html


def _page(html, url=LISTING_URL):
    return RenderedPage(url=url, html=html)


def test_explicit_last_page_control_wins():
    html = """
    <nav class="pagination">
      <a href="/blogs/page/2/">2</a>
      <a href="/blogs/page/40/">40</a>
      <a aria-label="Last page" href="/blogs/page/15/">Last</a>
    </nav>
    """
    assert resolve_last_page(_page(html), LISTING_URL) == f"{BASE}/blogs/page/15/"


def test_last_item_of_pagination_skips_next_link():
    page = _page(listing_html(["a"], last_page=4))
    assert resolve_last_page(page, LISTING_URL) == f"{BASE}/blogs/page/4/"


def test_max_numbered_link_when_no_pagination_container():
    html = """
    <div>
      <a href="?paged=2">2</a>
      <a href="?paged=12">12</a>
      <a href="?paged=3">3</a>
      <a href="/blogs/some-post/">2024 recap</a>
    </div>
    """
    assert resolve_last_page(_page(html), LISTING_URL) == f"{BASE}/blogs/?paged=12"


def test_href_page_number_fallback():
    html = '<div><a href="/blogs/page/7/">Older posts</a><a href="/blogs/page/3/">Back</a></div>'
    assert resolve_last_page(_page(html), LISTING_URL) == f"{BASE}/blogs/page/7/"


def test_no_pagination_means_current_page_is_last():
    assert resolve_last_page(_page("<html><body><p>one page</p></body></html>"), LISTING_URL) is None


def test_pointing_at_current_page_is_no_further_page():
    url = f"{BASE}/blogs/page/9/"
    html = '<nav class="pagination"><a href="/blogs/page/8/">8</a><a href="/blogs/page/9/">9</a></nav>'
    assert resolve_last_page(_page(html, url=url), LISTING_URL) is None


def test_placeholder_hrefs_are_ignored():
    html = '<nav class="pagination"><a href="/blogs/page/5/">5</a><a href="#">6</a></nav>'
    assert resolve_last_page(_page(html), LISTING_URL) == f"{BASE}/blogs/page/5/"


def test_page_number_from_url():
    assert page_number_from_url(f"{BASE}/blogs/page/3/") == 3
    assert page_number_from_url(f"{BASE}/blogs/?page=11") == 11
    assert page_number_from_url(f"{BASE}/blogs/") is None


def test_visible_last_text_is_an_explicit_control():
    html = """
    <div class="pagination">
      <a href="/blogs/page/2/">2</a>
      <a href="/blogs/page/3/">3</a>
      <a href="/blogs/page/40/">Last &raquo;</a>
    </div>
    """
    assert resolve_last_page(_page(html), LISTING_URL) == f"{BASE}/blogs/page/40/"


def test_last_label_in_pagination_is_not_a_step_link():
    html = """
    <ul class="page-numbers">
      <li><a href="/blogs/page/2/">2</a></li>
      <li><a href="/blogs/page/9/"><span>&raquo;</span> Go to last</a></li>
    </ul>
    """
    assert resolve_last_page(_page(html), LISTING_URL) == f"{BASE}/blogs/page/9/"
