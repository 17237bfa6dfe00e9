"""Tests for cover migration, baseline normalization and embedding."""

from unittest.mock import patch

from models.schemas import AlbumRepairResult
from pipeline.cover_reconciler import CoverReconciler, same_image_format
from utils.exceptions import ExternalToolError

COVER = b"\xff\xd8\xff\xe0baseline"


def new_result(album_dir):
    return AlbumRepairResult(album_path=album_dir)


class TestLegacyCovers:

    def test_same_image_format(self, tmp_path):
        assert same_image_format(tmp_path / "folder.jpeg", tmp_path / "cover.jpg")
        assert same_image_format(tmp_path / "front.png", tmp_path / "cover.PNG")
        assert not same_image_format(tmp_path / "front.png", tmp_path / "cover.jpg")

    def test_legacy_jpeg_renamed(self, album_dir, context_factory):
        (album_dir / "folder.jpg").write_bytes(COVER)
        context = context_factory(cover_file_name="cover.jpg", legacy_cover_file_names=["folder.jpg"], force=True)
        result = new_result(album_dir)

        CoverReconciler(context).reconcile_cover(album_dir, result)

        assert (album_dir / "cover.jpg").read_bytes() == COVER
        assert not (album_dir / "folder.jpg").exists()
        assert context.terminal.output_stream.getvalue() == "\t\tfolder.jpg renamed\n"

    def test_legacy_rename_declined(self, album_dir, context_factory):
        (album_dir / "folder.jpg").write_bytes(COVER)
        context = context_factory("n\n", cover_file_name="cover.jpg", legacy_cover_file_names=["folder.jpg"])

        CoverReconciler(context).reconcile_cover(album_dir, new_result(album_dir))

        assert (album_dir / "folder.jpg").exists()
        assert not (album_dir / "cover.jpg").exists()

    def test_legacy_png_converted(self, album_dir, context_factory):
        (album_dir / "cover.png").write_bytes(b"png")
        (album_dir / "folder.jpg").write_bytes(COVER)
        context = context_factory(cover_file_name="cover.jpg", legacy_cover_file_names=["cover.png", "folder.jpg"])
        context.image_tool.convert.side_effect = lambda source, destination: destination.write_bytes(COVER)

        CoverReconciler(context).reconcile_cover(album_dir, new_result(album_dir))

        context.image_tool.convert.assert_called_once_with(album_dir / "cover.png", album_dir / "cover.jpg")
        assert (album_dir / "cover.png").exists()
        assert (album_dir / "folder.jpg").exists()

    def test_existing_cover_is_left_alone(self, album_dir, context_factory):
        (album_dir / "cover.jpg").write_bytes(COVER)
        (album_dir / "folder.jpg").write_bytes(b"other")
        context = context_factory(cover_file_name="cover.jpg", legacy_cover_file_names=["folder.jpg"], force=True)

        CoverReconciler(context).reconcile_cover(album_dir, new_result(album_dir))

        assert (album_dir / "cover.jpg").read_bytes() == COVER
        assert (album_dir / "folder.jpg").exists()


class TestCoverExistence:

    def test_missing_cover_signalled(self, album_dir, context_factory):
        context = context_factory("n\n", cover_file_name="cover.jpg")
        result = new_result(album_dir)

        assert CoverReconciler(context).ensure_cover_exists(album_dir, result) is False
        assert context.terminal.output_stream.getvalue() == "\t\tCover does not exist.\n\t\tRetry? (Y/n)\n"
        assert result.warnings == ["no cover.jpg"]

    def test_cover_provided_before_retry(self, album_dir, context_factory):
        context = context_factory(cover_file_name="cover.jpg")
        cover = album_dir / "cover.jpg"
        reconciler = CoverReconciler(context)

        def operator_drops_cover(message, path, indent):
            cover.write_bytes(COVER)

        with patch.object(context.launcher, "signal_path", side_effect=operator_drops_cover):
            assert reconciler.ensure_cover_exists(album_dir, new_result(album_dir)) is True


class TestCoverProcessing:

    def test_baseline_cover_is_never_converted(self, album_dir, song_factory, context_factory):
        (album_dir / "cover.jpg").write_bytes(COVER)
        song = song_factory(album_dir / "01.mp3", frames={'TIT2': "x"})
        context = context_factory(cover_file_name="cover.jpg", process_cover_enabled=True)
        context.image_tool.is_baseline_jpeg.return_value = True

        CoverReconciler(context).ensure_cover_processed(album_dir, new_result(album_dir))

        context.image_tool.convert.assert_not_called()
        assert context.tag_codec.read(song).cover_bytes == COVER
        assert context.terminal.output_stream.getvalue() == "\t\tCover saved to MP3\n"

    def test_progressive_cover_converted_in_place(self, album_dir, song_factory, context_factory):
        cover = album_dir / "cover.jpg"
        cover.write_bytes(b"progressive")
        song = song_factory(album_dir / "01.mp3", frames={'TIT2': "x"})
        context = context_factory(cover_file_name="cover.jpg", process_cover_enabled=True)
        context.image_tool.is_baseline_jpeg.return_value = False
        context.image_tool.convert.side_effect = lambda source, destination: destination.write_bytes(COVER)

        CoverReconciler(context).ensure_cover_processed(album_dir, new_result(album_dir))

        context.image_tool.convert.assert_called_once_with(cover, cover)
        assert context.tag_codec.read(song).cover_bytes == COVER

    def test_identical_embedded_cover_not_rewritten(self, album_dir, song_factory, context_factory):
        (album_dir / "cover.jpg").write_bytes(COVER)
        song_factory(album_dir / "01.mp3", frames={'TIT2': "x"}, cover=COVER)
        song_factory(album_dir / "02.mp3", frames={'TIT2': "y"}, cover=b"stale")
        context = context_factory(cover_file_name="cover.jpg", process_cover_enabled=True)
        context.image_tool.is_baseline_jpeg.return_value = True
        reconciler = CoverReconciler(context)

        with patch.object(context.tag_codec, "write_embedded_cover",
                          wraps=context.tag_codec.write_embedded_cover) as write:
            reconciler.ensure_cover_processed(album_dir, new_result(album_dir))

        write.assert_called_once_with(album_dir / "02.mp3", COVER)

    def test_processing_disabled(self, album_dir, song_factory, context_factory):
        (album_dir / "cover.jpg").write_bytes(COVER)
        song = song_factory(album_dir / "01.mp3", frames={'TIT2': "x"})
        context = context_factory(cover_file_name="cover.jpg", process_cover_enabled=False)

        CoverReconciler(context).ensure_cover_processed(album_dir, new_result(album_dir))

        context.image_tool.is_baseline_jpeg.assert_not_called()
        assert context.tag_codec.read(song).cover_bytes is None

    def test_non_jpeg_cover_not_processed(self, album_dir, context_factory):
        (album_dir / "cover.png").write_bytes(b"png")
        context = context_factory(cover_file_name="cover.png", process_cover_enabled=True)

        CoverReconciler(context).ensure_cover_processed(album_dir, new_result(album_dir))

        context.image_tool.is_baseline_jpeg.assert_not_called()

    def test_conversion_failure_reported(self, album_dir, song_factory, context_factory):
        (album_dir / "cover.jpg").write_bytes(b"progressive")
        song = song_factory(album_dir / "01.mp3", frames={'TIT2': "x"})
        context = context_factory(cover_file_name="cover.jpg", process_cover_enabled=True)
        context.image_tool.is_baseline_jpeg.side_effect = ExternalToolError("identify", "not installed")
        result = new_result(album_dir)

        CoverReconciler(context).ensure_cover_processed(album_dir, result)

        assert context.terminal.output_stream.getvalue() == "\tCannot convert cover\n"
        assert len(result.errors) == 1
        assert context.tag_codec.read(song).cover_bytes is None
