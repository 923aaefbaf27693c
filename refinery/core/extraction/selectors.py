"""Ordered selector-candidate tables.

Each tuple is tried in order and the first usable match wins. Site-specific
heuristics are extended here, without touching the extraction control flow.
"""

from dataclasses import dataclass

# Descendants removed before measuring or reading body text
CHROME_TAGS = ("script", "style", "nav", "header", "footer", "aside")


@dataclass(frozen=True)
class FieldSelectors:
    """Candidate selectors per logical article field."""

    title: tuple[str, ...]
    body: tuple[str, ...]
    author: tuple[str, ...] = ()
    date: tuple[str, ...] = ()
    body_min_length: int | None = None
    body_fallback: bool = False


SOURCE_SELECTORS = FieldSelectors(
    title=(
        "h1",
        ".entry-title",
        ".post-title",
        '[class*="title"]',
        "article h1",
        ".blog-title",
    ),
    body=(
        ".entry-content",
        ".post-content",
        ".article-content",
        ".blog-content",
        '[class*="content"]',
        "article",
        ".prose",
    ),
    author=(
        ".author",
        ".author-name",
        '[class*="author"]',
        '[rel="author"]',
        ".byline",
        ".meta-author",
        'meta[name="author"]',
    ),
    date=(
        "time[datetime]",
        'meta[property="article:published_time"]',
        ".date",
        ".published",
        ".post-date",
        '[class*="date"]',
        ".meta-date",
    ),
    body_min_length=100,
)

REFERENCE_SELECTORS = FieldSelectors(
    title=(
        "h1",
        ".entry-title",
        ".post-title",
        ".article-title",
        '[class*="title"]',
        "article h1",
        ".blog-title",
        "header h1",
        '[itemprop="headline"]',
        'meta[property="og:title"]',
        "title",
    ),
    body=(
        "article",
        ".entry-content",
        ".post-content",
        ".article-content",
        ".blog-content",
        '[class*="content"]',
        ".prose",
        "main",
        ".main-content",
        '[itemprop="articleBody"]',
    ),
    body_min_length=200,
    body_fallback=True,
)

# Listing pages
PAGINATION_CONTAINERS = (
    ".pagination",
    ".wp-pagenavi",
    ".page-numbers",
    'nav[aria-label*="pagination"]',
    ".nav-links",
    '[class*="pagination"]',
)

# Link labels that mark the final page regardless of any page number:
# exact symbols, or any label containing the word
LAST_PAGE_SYMBOLS = (">>", "»")
LAST_PAGE_WORD = "last"

PAGE_NUMBER_PATTERNS = (
    r"/page/(\d+)",
    r"[?&]page=(\d+)",
    r"[?&]paged=(\d+)",
)

ARTICLE_CONTAINERS = (
    "article",
    ".post",
    ".blog-post",
    ".entry",
    '[class*="article"]',
    '[class*="post"]',
    ".card",
)

ARTICLE_TITLE_SELECTOR = 'h1, h2, h3, .title, [class*="title"]'

MAIN_CONTENT_SELECTOR = "main, .main, #main, .content, #content"

ARTICLE_PATH_MARKERS = ("/blog/", "/blogs/", "/article/", "/post/")

# Search result pages
SEARCH_RESULT_CONTAINERS = ("div.g", "[data-sokoban-container]", ".tF2Cxc")

SEARCH_LINK_SELECTOR = 'a[href^="http"]'

SEARCH_TITLE_SELECTOR = "h3"

SEARCH_SNIPPET_SELECTOR = ".VwiC3b, .IsZvec, .s3v9rd"

CONTENT_PATH_MARKERS = (
    "/blog",
    "/article",
    "/post",
    "/news",
    "/story",
    "/guide",
    "/how-to",
    "/what-is",
    "/tips",
)

TRANSACTIONAL_PATH_MARKERS = ("/product", "/pricing", "/login", "/signup", "/cart")
