import asyncio

from conftest import listing_page, post_fragment

from crawler import PaginationCrawler, PostIndex
from parsing import extract_fragments, parse_document, parse_pagination


def page_url(creator_id, page):
    return f"https://yiff.party/patreon/{creator_id}?p={page}"


class TestParsePagination:
    def test_reads_current_and_total(self):
        document = parse_document(listing_page([], page=1, total=12))
        assert parse_pagination(document) == (1, 12)

    def test_missing_indicator_means_single_page(self):
        document = parse_document(listing_page([post_fragment(1)]))
        assert parse_pagination(document) is None

    def test_unreadable_indicator(self):
        document = parse_document('<span class="paginate-count">Seite eins</span>')
        assert parse_pagination(document) is None


class TestExtractFragments:
    def test_ignores_elements_without_post_id(self):
        html = listing_page([post_fragment(10), '<div class="yp-post" id="header"></div>', post_fragment(11)])

        result = extract_fragments(parse_document(html))

        assert [post_id for post_id, _ in result] == [10, 11]


class TestPostIndex:
    def test_first_entry_wins_on_collision(self):
        # Arrange
        index = PostIndex()
        first = parse_document(post_fragment(1, "first")).div
        second = parse_document(post_fragment(1, "second")).div

        # Act
        added_first = index.add(1, first, page=1)
        added_second = index.add(1, second, page=2)

        # Assert
        assert added_first is True
        assert added_second is False
        assert "first" in index.get(1).get_text()
        assert index.collisions == [1]


class TestPaginationCrawler:
    def test_merges_all_pages(self, session):
        # Arrange
        pages, per_page = 3, 4
        for page in range(1, pages + 1):
            ids = range(page * 100, page * 100 + per_page)
            session.add(page_url(42, page), listing_page([post_fragment(i) for i in ids], page, pages))

        # Act
        result = asyncio.run(PaginationCrawler(session).crawl_all(42))

        # Assert
        expected = {page * 100 + i for page in range(1, pages + 1) for i in range(per_page)}
        assert set(result.index.keys()) == expected
        assert len(result.index) == pages * per_page
        assert result.total_pages == pages
        assert result.complete
        assert session.requests == [page_url(42, p) for p in range(1, pages + 1)]

    def test_parallel_fetch_builds_same_index(self, session):
        for page in range(1, 6):
            session.add(page_url(42, page), listing_page([post_fragment(page)], page, 5))

        result = asyncio.run(PaginationCrawler(session, concurrency=4).crawl_all(42))

        assert set(result.index) == {1, 2, 3, 4, 5}

    def test_single_page_without_indicator(self, session):
        session.add(page_url(7, 1), listing_page([post_fragment(1), post_fragment(2)]))

        result = asyncio.run(PaginationCrawler(session).crawl_all(7))

        assert set(result.index) == {1, 2}
        assert result.total_pages == 1
        assert session.requests == [page_url(7, 1)]

    def test_failed_page_is_recorded_and_crawl_continues(self, session):
        # Arrange
        session.add(page_url(42, 1), listing_page([post_fragment(1)], 1, 3))
        session.add(page_url(42, 2), "error", status=500)
        session.add(page_url(42, 3), listing_page([post_fragment(3)], 3, 3))

        # Act
        result = asyncio.run(PaginationCrawler(session).crawl_all(42))

        # Assert
        assert set(result.index) == {1, 3}
        assert result.failed_pages == [2]
        assert not result.complete

    def test_undecodable_page_is_recorded_and_crawl_continues(self, session):
        # Arrange
        session.add(page_url(42, 1), listing_page([post_fragment(1)], 1, 3))
        session.add(page_url(42, 2), b"<html>\xff\xfe kaputt</html>")
        session.add(page_url(42, 3), listing_page([post_fragment(3)], 3, 3))

        # Act
        result = asyncio.run(PaginationCrawler(session).crawl_all(42))

        # Assert
        assert set(result.index) == {1, 3}
        assert result.failed_pages == [2]

    def test_page_without_posts_counts_as_failed(self, session):
        session.add(page_url(42, 1), listing_page([post_fragment(1)], 1, 2))
        session.add(page_url(42, 2), "<html><body>Wartungsarbeiten</body></html>")

        result = asyncio.run(PaginationCrawler(session).crawl_all(42))

        assert result.failed_pages == [2]

    def test_first_page_failure_yields_empty_index(self, session):
        result = asyncio.run(PaginationCrawler(session).crawl_all(42))

        assert len(result.index) == 0
        assert result.failed_pages == [1]

    def test_duplicate_ids_across_pages_are_flagged(self, session):
        session.add(page_url(42, 1), listing_page([post_fragment(1, "from page one")], 1, 2))
        session.add(page_url(42, 2), listing_page([post_fragment(1, "from page two")], 2, 2))

        result = asyncio.run(PaginationCrawler(session).crawl_all(42))

        assert "from page one" in result.index.get(1).get_text()
        assert result.index.collisions == [1]
