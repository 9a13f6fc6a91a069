from pathlib import Path

from conftest import post_fragment

from crawler import PostIndex
from models import FileRef, PostRecord
from parsing import parse_document
from reconciler import inline_image_url, is_media_card, reconcile

DIRECTORY = Path("/archive/2019-01-01_Post_1")


def index_with(post_id, inner):
    index = PostIndex()
    index.add(post_id, parse_document(post_fragment(post_id, inner)).div)
    return index


def media_card(title, links):
    return (
        f'<div class="card-attachments"><div class="card-title">{title}</div>'
        f"{''.join(links)}</div>"
    )


class TestIsMediaCard:
    def test_literal_match_only(self):
        assert is_media_card("Media")
        assert is_media_card("Media (3)")
        assert not is_media_card("media")
        assert not is_media_card("Attachments")
        assert not is_media_card("")


class TestInlineImageUrl:
    def test_slash_handling(self):
        assert inline_image_url("/a.png") == "https://yiff.party/a.png"
        assert inline_image_url("b.png") == "https://yiff.party/b.png"

    def test_absolute_url_is_kept(self):
        assert inline_image_url("https://cdn.example/c.png") == "https://cdn.example/c.png"


class TestReconcile:
    def test_two_inline_images(self):
        # Arrange
        post = PostRecord(id=1, title="Post", body='<p><img src="/a.png"><img src="b.png"></p>')

        # Act
        result = reconcile(post, PostIndex(), DIRECTORY)

        # Assert
        assert [task.url for task in result.tasks] == [
            "https://yiff.party/a.png",
            "https://yiff.party/b.png",
        ]
        assert [task.filename for task in result.tasks] == ["a.png", "b.png"]

    def test_empty_body_attachment_and_empty_post_file(self):
        # Arrange
        post = PostRecord(
            id=1,
            body="",
            attachments=[FileRef("doc.pdf", "https://yiff.party/patreon_data/1/doc.pdf")],
            post_file=FileRef("header.png", ""),
        )

        # Act
        result = reconcile(post, index_with(1, ""), DIRECTORY)

        # Assert
        assert len(result.tasks) == 1
        assert result.tasks[0].filename == "doc.pdf"
        assert result.tasks[0].directory == DIRECTORY
        assert result.body_artifact is None

    def test_body_inline_paths_are_rewritten(self):
        post = PostRecord(id=9, body='<img src="/patreon_inline/9/abc.jpg">')

        result = reconcile(post, PostIndex(), DIRECTORY)

        assert result.body_artifact.content == '<img src="./abc.jpg">'
        # Download-URL stammt aus dem Original-Body
        assert result.tasks[0].url == "https://yiff.party/patreon_inline/9/abc.jpg"

    def test_only_media_cards_produce_tasks(self):
        # Arrange
        cards = (
            media_card("Media", [
                '<a href="https://yiff.party/patreon_media/1/clip.mp4">clip.mp4</a>',
                "<a>no href</a>",
                '<a href="/patreon_media/1/pic.png">pic.png</a>',
            ])
            + media_card("media", ['<a href="https://yiff.party/x/lower.png">lower.png</a>'])
            + media_card("Attachments", ['<a href="https://yiff.party/x/att.zip">att.zip</a>'])
        )
        post = PostRecord(id=1)

        # Act
        result = reconcile(post, index_with(1, cards), DIRECTORY)

        # Assert
        assert [(task.url, task.filename) for task in result.tasks] == [
            ("https://yiff.party/patreon_media/1/clip.mp4", "clip.mp4"),
            ("https://yiff.party/patreon_media/1/pic.png", "pic.png"),
        ]

    def test_embed_section_writes_url_list_and_markup(self):
        # Arrange
        embed = (
            '<div class="card-embed">'
            '<a href="https://youtu.be/one">one</a><a href="https://vimeo.com/2">two</a>'
            "</div>"
        )

        # Act
        result = reconcile(PostRecord(id=1), index_with(1, embed), DIRECTORY)

        # Assert
        files = {aux.name: aux.content for aux in result.aux_files}
        assert files["_embed_urls.txt"] == "https://youtu.be/one\nhttps://vimeo.com/2"
        assert files["_embed_body.html"].startswith('<div class="card-embed">')
        assert result.tasks == []

    def test_embed_without_links_keeps_markup_only(self):
        embed = '<div class="card-embed"><iframe src="x"></iframe></div>'

        result = reconcile(PostRecord(id=1), index_with(1, embed), DIRECTORY)

        assert [aux.name for aux in result.aux_files] == ["_embed_body.html"]

    def test_missing_fragment_uses_json_fields_only(self):
        # Arrange
        post = PostRecord(
            id=5,
            attachments=[
                FileRef("a.zip", "https://yiff.party/patreon_data/5/a.zip"),
                FileRef("b.zip", "https://yiff.party/patreon_data/5/b.zip"),
            ],
            post_file=FileRef("cover.png", "https://yiff.party/patreon_data/5/cover.png"),
        )
        unrelated = index_with(6, media_card("Media", ['<a href="/m.png">m.png</a>']))

        # Act
        result = reconcile(post, unrelated, DIRECTORY)

        # Assert
        assert result.fragment_found is False
        assert [task.filename for task in result.tasks] == ["a.zip", "b.zip", "cover.png"]
        assert result.aux_files == []

    def test_attachment_without_url_does_not_block_others(self):
        post = PostRecord(id=1, attachments=[FileRef("broken", ""), FileRef("ok.zip", "/files/ok.zip")])

        result = reconcile(post, PostIndex(), DIRECTORY)

        assert [task.url for task in result.tasks] == ["https://yiff.party/files/ok.zip"]

    def test_malformed_url_skips_only_that_reference(self):
        # Arrange
        post = PostRecord(
            id=1,
            attachments=[FileRef("bad.zip", "http://[broken/x.zip"), FileRef("ok.zip", "/ok.zip")],
            post_file=FileRef("", "http://[broken/cover.png"),
        )
        fragment = media_card("Media", ['<a href="http://[broken/m.png">m.png</a>', '<a href="/m2.png">m2.png</a>'])

        # Act
        result = reconcile(post, index_with(1, fragment), DIRECTORY)

        # Assert
        assert [task.filename for task in result.tasks] == ["m2.png", "ok.zip"]
