#!/usr/bin/env python3
"""
Unit tests for ChannelDigest core modules.
Tests cover: error codes, config, state store, segmentation, merging,
security utils, source parsing, and report rendering.
"""

import sys
import json
import tempfile
import subprocess
from datetime import date, datetime, timezone
from pathlib import Path
from unittest import mock

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

import requests

from channeldigest.core.constants import ErrorCode, TRANSCRIPTION_MAX_BYTES
from channeldigest.core.error_codes import (
    PipelineError, FetchError, ProbeError, SegmentationError, TranscriptionCallError,
    error_record,
)
from channeldigest.core.config import PipelineConfig, load_config
from channeldigest.core.models import (
    AnalysisResult, AudioAsset, Chunk, ErrorRecord, ExtendedMetadata, Item, ItemResult,
    ProcessingState,
)
from channeldigest.core.state_store import (
    StateStore, is_processed, mark_processed, update_last_run, get_stats,
    format_timestamp, parse_timestamp,
)
from channeldigest.core.segmenter import (
    probe_duration, plan_chunks, materialize_chunks, cleanup_chunks, chunks_dir_for,
)
from channeldigest.core.merge import merge_chunk_texts
from channeldigest.core.security_utils import sanitize_name, safe_item_dir
from channeldigest.core.source_ytdlp import (
    YtDlpSource, parse_playlist_lines, parse_upload_date,
)
from channeldigest.core.report import (
    MarkdownReporter, format_duration, format_number, post_digest,
)


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode,
                                       stdout=stdout, stderr=stderr)


class TestErrorCodes(unittest.TestCase):
    """Test error taxonomy."""

    def test_default_codes(self):
        self.assertEqual(FetchError("x").code, ErrorCode.FETCH_FAILED)
        self.assertEqual(ProbeError("x").code, ErrorCode.PROBE_FAILED)
        self.assertEqual(SegmentationError("x").code, ErrorCode.SEGMENTATION)

    def test_explicit_code_and_str(self):
        err = TranscriptionCallError("timed out", code=ErrorCode.TRANSCRIPTION_TIMEOUT)
        self.assertEqual(err.code, ErrorCode.TRANSCRIPTION_TIMEOUT)
        self.assertEqual(str(err), "[ERR_TRANSCRIPTION_TIMEOUT] timed out")

    def test_error_record_pipeline_error(self):
        record = error_record(FetchError("channel gone"))
        self.assertEqual(record, ErrorRecord(code=ErrorCode.FETCH_FAILED, message="channel gone"))

    def test_error_record_unexpected(self):
        record = error_record(ValueError("boom"))
        self.assertEqual(record.code, ErrorCode.UNEXPECTED)
        self.assertIn("ValueError", record.message)

    def test_error_record_truncates(self):
        record = error_record(PipelineError("x" * 5000))
        self.assertEqual(len(record.message), 2000)


class TestConfig(unittest.TestCase):
    """Test configuration loading and validation."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "config.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, data):
        self.path.write_text(json.dumps(data))

    def test_defaults_when_missing(self):
        config = load_config(self.path, env={})
        self.assertEqual(config.videos_per_source, 5)
        self.assertEqual(config.max_item_duration_sec, 3600)
        self.assertEqual(len(config.sources), 17)
        self.assertIsNone(config.openai_api_key)

    def test_size_budget_applies_headroom(self):
        config = load_config(self.path, env={})
        self.assertEqual(config.size_budget_bytes, int(TRANSCRIPTION_MAX_BYTES * 0.8))

    def test_file_overrides(self):
        self._write({'sources': ['@one', '@two'], 'videos_per_source': 3,
                     'state_path': 'custom/state.json'})
        config = load_config(self.path, env={})
        self.assertEqual(config.sources, ('@one', '@two'))
        self.assertEqual(config.videos_per_source, 3)
        self.assertEqual(config.state_path, Path('custom/state.json'))

    def test_invalid_values_clamped_or_defaulted(self):
        self._write({'chunk_size_headroom': 5, 'videos_per_source': 'lots',
                     'max_item_duration_sec': 1, 'sources': 42})
        config = load_config(self.path, env={})
        self.assertEqual(config.chunk_size_headroom, 1.0)
        self.assertEqual(config.videos_per_source, 5)
        self.assertEqual(config.max_item_duration_sec, 60)
        self.assertEqual(len(config.sources), 17)

    def test_invalid_paths_and_models_fall_back(self):
        self._write({'state_path': None, 'reports_dir': 5, 'scratch_dir': ['x'],
                     'transcription_model': '', 'analysis_model': {'name': 'gpt'}})
        config = load_config(self.path, env={})
        self.assertEqual(config.state_path, Path('state.json'))
        self.assertEqual(config.reports_dir, Path('reports'))
        self.assertEqual(config.scratch_dir, Path('downloads'))
        self.assertEqual(config.transcription_model, 'whisper-1')
        self.assertEqual(config.analysis_model, 'gpt-4o')

    def test_malformed_file_uses_defaults(self):
        self.path.write_text("{not json")
        config = load_config(self.path, env={})
        self.assertEqual(config.videos_per_source, 5)

    def test_env_secrets(self):
        config = load_config(self.path, env={'OPENAI_API_KEY': 'sk-test',
                                             'DISCORD_WEBHOOK_URL': 'https://hook'})
        self.assertEqual(config.openai_api_key, 'sk-test')
        self.assertEqual(config.webhook_url, 'https://hook')

    def test_config_is_immutable(self):
        config = PipelineConfig()
        with self.assertRaises(Exception):
            config.videos_per_source = 10


class TestStateStore(unittest.TestCase):
    """Test durable state tracking."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "state.json"
        self.store = StateStore(self.path)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_load_missing_returns_empty(self):
        state = self.store.load()
        self.assertIsNone(state.last_run)
        self.assertEqual(dict(state.processed_items), {})

    def test_load_corrupt_returns_empty(self):
        self.path.write_text('{"processedVideos": {"abc": "2024-')
        self.assertEqual(dict(self.store.load().processed_items), {})

    def test_load_wrong_shape_returns_empty(self):
        self.path.write_text('{"processedVideos": ["abc"]}')
        self.assertEqual(dict(self.store.load().processed_items), {})
        self.path.write_text('[1, 2, 3]')
        self.assertEqual(dict(self.store.load().processed_items), {})

    def test_mark_processed_is_pure(self):
        state = ProcessingState()
        new_state = mark_processed(state, "vid1")
        self.assertFalse(is_processed(state, "vid1"))
        self.assertTrue(is_processed(new_state, "vid1"))
        self.assertFalse(self.path.exists())

    def test_save_and_reload(self):
        state = mark_processed(mark_processed(ProcessingState(), "vid1"), "vid2")
        state = update_last_run(state)
        self.assertTrue(self.store.save(state))

        reloaded = StateStore(self.path).load()
        self.assertEqual(set(reloaded.processed_items), {"vid1", "vid2"})
        self.assertIsNotNone(reloaded.last_run)

    def test_persisted_layout(self):
        self.store.save(mark_processed(ProcessingState(), "vid1"))
        data = json.loads(self.path.read_text())
        self.assertEqual(set(data), {"lastRun", "processedVideos"})
        self.assertIsNone(data["lastRun"])
        self.assertTrue(data["processedVideos"]["vid1"].endswith("Z"))

    def test_save_leaves_no_temp_files(self):
        self.store.save(mark_processed(ProcessingState(), "vid1"))
        self.store.save(mark_processed(ProcessingState(), "vid2"))
        self.assertEqual([p.name for p in Path(self.tmpdir.name).iterdir()], ["state.json"])

    def test_save_failure_is_not_fatal(self):
        target_dir = Path(self.tmpdir.name) / "is_a_dir"
        target_dir.mkdir()
        (target_dir / "occupied").write_text("x")
        store = StateStore(target_dir)
        self.assertFalse(store.save(ProcessingState()))

    def test_failed_save_keeps_previous_file(self):
        self.store.save(mark_processed(ProcessingState(), "vid1"))
        with mock.patch("channeldigest.core.state_store.os.replace", side_effect=OSError("disk full")):
            self.assertFalse(self.store.save(mark_processed(ProcessingState(), "vid2")))
        self.assertEqual(set(self.store.load().processed_items), {"vid1"})
        self.assertEqual([p.name for p in Path(self.tmpdir.name).iterdir()], ["state.json"])

    def test_bad_timestamp_keeps_id(self):
        self.path.write_text(json.dumps({
            "lastRun": None,
            "processedVideos": {"good": "2024-05-01T10:00:00.000Z", "bad": "yesterday"},
        }))
        state = self.store.load()
        self.assertEqual(set(state.processed_items), {"good", "bad"})

    def test_timestamp_formats(self):
        ts = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        self.assertEqual(format_timestamp(ts), "2024-05-01T10:00:00.000Z")
        self.assertEqual(parse_timestamp("2024-05-01T10:00:00.000Z"), ts)
        self.assertEqual(parse_timestamp("2024-05-01T10:00:00+00:00"), ts)

    def test_stats(self):
        stats = get_stats(ProcessingState())
        self.assertEqual(stats['processed_count'], 0)
        self.assertIsNone(stats['oldest_processed'])

        early = datetime(2024, 1, 1, tzinfo=timezone.utc)
        late = datetime(2024, 6, 1, tzinfo=timezone.utc)
        stats = get_stats(ProcessingState(processed_items={"a": late, "b": early}))
        self.assertEqual(stats['processed_count'], 2)
        self.assertEqual(stats['oldest_processed'], early)
        self.assertEqual(stats['newest_processed'], late)


class TestChunkPlanning(unittest.TestCase):
    """Test size-constrained chunk planning."""

    def _asset(self, size, duration):
        return AudioAsset(path=Path("/tmp/x.mp3"), size_bytes=size, duration_sec=duration)

    def _assert_covers(self, ranges, duration):
        self.assertEqual(ranges[0].start_sec, 0.0)
        self.assertEqual(ranges[-1].end_sec, duration)
        for i, r in enumerate(ranges):
            self.assertEqual(r.index, i)
            self.assertLess(r.start_sec, r.end_sec)
            if i > 0:
                self.assertEqual(r.start_sec, ranges[i - 1].end_sec)

    def test_small_asset_single_range(self):
        ranges = plan_chunks(self._asset(10_000_000, 600.0), 20_000_000)
        self.assertEqual(len(ranges), 1)
        self.assertEqual((ranges[0].start_sec, ranges[0].end_sec), (0.0, 600.0))

    def test_budget_boundary_is_inclusive(self):
        self.assertEqual(len(plan_chunks(self._asset(20_000_000, 600.0), 20_000_000)), 1)

    def test_chunk_duration_from_bitrate(self):
        # 100 kB/s, 20 MB budget -> 200 s chunks
        ranges = plan_chunks(self._asset(50_000_000, 500.0), 20_000_000)
        self.assertEqual([(r.start_sec, r.end_sec) for r in ranges],
                         [(0.0, 200.0), (200.0, 400.0), (400.0, 500.0)])

    def test_coverage_for_various_assets(self):
        cases = [
            (50_000_000, 500.5, 20_000_000),
            (26_214_400, 2183.4, 20_971_520),
            (104_857_600, 7200.0, 20_971_520),
            (30_000_000, 3.7, 1_000_000),
            (99_999_999, 1234.567, 3_333_333),
        ]
        for size, duration, budget in cases:
            with self.subTest(size=size, duration=duration, budget=budget):
                ranges = plan_chunks(self._asset(size, duration), budget)
                self.assertGreater(len(ranges), 1)
                self._assert_covers(ranges, duration)

    def test_chunk_duration_floor_of_one_second(self):
        ranges = plan_chunks(self._asset(10_000_000, 10.0), 1000)
        self.assertEqual(len(ranges), 10)
        self._assert_covers(ranges, 10.0)

    def test_oversized_without_duration_raises(self):
        with self.assertRaises(ProbeError):
            plan_chunks(self._asset(50_000_000, None), 20_000_000)


class TestProbeDuration(unittest.TestCase):
    """Test ffprobe duration probing."""

    asset = AudioAsset(path=Path("/tmp/x.mp3"), size_bytes=1)
    target = "channeldigest.core.segmenter.run_subprocess_capture"

    def test_success(self):
        with mock.patch(self.target, return_value=_completed(stdout="123.45\n")):
            self.assertAlmostEqual(probe_duration(self.asset), 123.45)

    def test_nonzero_exit(self):
        with mock.patch(self.target, return_value=_completed(1, stderr="Invalid data")):
            with self.assertRaises(ProbeError):
                probe_duration(self.asset)

    def test_unparseable_output(self):
        with mock.patch(self.target, return_value=_completed(stdout="N/A\n")):
            with self.assertRaises(ProbeError):
                probe_duration(self.asset)

    def test_zero_duration(self):
        with mock.patch(self.target, return_value=_completed(stdout="0.0\n")):
            with self.assertRaises(ProbeError):
                probe_duration(self.asset)

    def test_missing_tool(self):
        with mock.patch(self.target, side_effect=FileNotFoundError("ffprobe")):
            with self.assertRaises(ProbeError):
                probe_duration(self.asset)


class TestMaterializeChunks(unittest.TestCase):
    """Test physical splitting and chunk cleanup."""

    target = "channeldigest.core.segmenter.run_subprocess_capture"

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        path = Path(self.tmpdir.name) / "vid1.mp3"
        path.write_bytes(b"\x00" * 100)
        self.asset = AudioAsset(path=path, size_bytes=100, duration_sec=30.0)
        self.ranges = plan_chunks(AudioAsset(path, 100, 30.0), 40)

    def tearDown(self):
        self.tmpdir.cleanup()

    @staticmethod
    def _ffmpeg_writes_output(args, timeout=None):
        Path(args[-1]).write_bytes(b"chunk")
        return _completed()

    def test_stream_copy_split(self):
        with mock.patch(self.target, side_effect=self._ffmpeg_writes_output) as run:
            chunks = materialize_chunks(self.asset, self.ranges)
        self.assertEqual([c.index for c in chunks], [0, 1, 2])
        self.assertTrue(all(c.local_path.exists() for c in chunks))
        self.assertEqual(chunks[0].local_path.parent, chunks_dir_for(self.asset))
        args = run.call_args_list[0].args[0]
        self.assertIn("copy", args)
        self.assertEqual(args[args.index("-codec:a") + 1], "copy")

    def test_failed_range_is_left_out(self):
        calls = []

        def flaky(args, timeout=None):
            calls.append(args)
            if len(calls) == 2:
                return _completed(1, stderr="boom")
            return self._ffmpeg_writes_output(args)

        with mock.patch(self.target, side_effect=flaky):
            chunks = materialize_chunks(self.asset, self.ranges)
        self.assertEqual([c.index for c in chunks], [0, 2])

    def test_zero_chunks_raises(self):
        with mock.patch(self.target, return_value=_completed(1, stderr="boom")):
            with self.assertRaises(SegmentationError):
                materialize_chunks(self.asset, self.ranges)
        self.assertFalse(chunks_dir_for(self.asset).exists())

    def test_cleanup_tolerates_missing_files(self):
        chunks_dir = chunks_dir_for(self.asset)
        chunks_dir.mkdir()
        present = chunks_dir / "chunk_000.mp3"
        present.write_bytes(b"x")
        chunks = [
            Chunk(0, 0.0, 10.0, present),
            Chunk(1, 10.0, 20.0, chunks_dir / "chunk_001.mp3"),  # never created
        ]
        cleanup_chunks(chunks, chunks_dir)
        self.assertFalse(present.exists())
        self.assertFalse(chunks_dir.exists())

    def test_cleanup_continues_after_permission_error(self):
        chunks_dir = chunks_dir_for(self.asset)
        chunks_dir.mkdir()
        first = chunks_dir / "chunk_000.mp3"
        second = chunks_dir / "chunk_001.mp3"
        first.write_bytes(b"x")
        second.write_bytes(b"x")
        real_unlink = Path.unlink

        def unlink(path, *args, **kwargs):
            if path == first:
                raise PermissionError("denied")
            return real_unlink(path, *args, **kwargs)

        with mock.patch.object(Path, "unlink", unlink):
            cleanup_chunks([Chunk(0, 0, 1, first), Chunk(1, 1, 2, second)])
        self.assertTrue(first.exists())
        self.assertFalse(second.exists())


class TestMerge(unittest.TestCase):
    """Test transcript reassembly."""

    def test_in_order(self):
        self.assertEqual(merge_chunk_texts([(0, "a"), (1, "b"), (2, "c")], 3), "a b c")

    def test_reversed_completion_order(self):
        pairs = [(3, "four"), (2, "three"), (1, "two"), (0, "one")]
        self.assertEqual(merge_chunk_texts(pairs, 4), "one two three four")

    def test_failed_chunk_keeps_position(self):
        result = merge_chunk_texts([(0, "t0"), (1, "t1"), (2, ""), (3, "t3")], 4)
        self.assertEqual(result, "t0" + " " + "t1" + " " + "" + " " + "t3")

    def test_missing_index_is_empty(self):
        self.assertEqual(merge_chunk_texts([(0, "a"), (2, "c")], 3), "a  c")

    def test_single_chunk(self):
        self.assertEqual(merge_chunk_texts([(0, "only")], 1), "only")


class TestSecurityUtils(unittest.TestCase):
    """Test scratch path safety."""

    def test_sanitize_plain_id(self):
        self.assertEqual(sanitize_name("dQw4w9WgXcQ"), "dQw4w9WgXcQ")

    def test_sanitize_traversal(self):
        result = sanitize_name("../../etc/passwd")
        self.assertNotIn("..", result)
        self.assertNotIn("/", result)

    def test_safe_item_dir_confined(self):
        root = Path("/tmp/scratch_root")
        for item_id in ("abc123", "../../etc", "..", "", "a/b"):
            with self.subTest(item_id=item_id):
                result = safe_item_dir(root, item_id)
                self.assertEqual(result.resolve().parent, root.resolve())


class TestSourceParsing(unittest.TestCase):
    """Test yt-dlp output handling."""

    target = "channeldigest.core.source_ytdlp.run_subprocess_capture"

    def test_parse_playlist_lines(self):
        stdout = "\n".join([
            json.dumps({"id": "aaa", "title": "First", "duration": 600.0,
                        "view_count": 1200, "upload_date": "20240501"}),
            "{broken json",
            "",
            json.dumps({"id": "bbb", "title": "Second", "url": "https://www.youtube.com/watch?v=bbb"}),
            json.dumps({"title": "No id"}),
        ])
        items = parse_playlist_lines(stdout, "@chan")
        self.assertEqual([i.id for i in items], ["aaa", "bbb"])
        self.assertEqual(items[0].duration_sec, 600)
        self.assertEqual(items[0].upload_date, date(2024, 5, 1))
        self.assertEqual(items[0].url, "https://www.youtube.com/watch?v=aaa")
        self.assertEqual(items[0].source_ref, "@chan")
        self.assertIsNone(items[1].duration_sec)

    def test_parse_upload_date(self):
        self.assertEqual(parse_upload_date("20231231"), date(2023, 12, 31))
        self.assertIsNone(parse_upload_date(None))
        self.assertIsNone(parse_upload_date("last week"))

    def test_listing_failure_raises(self):
        with mock.patch(self.target, return_value=_completed(1, stderr="HTTP Error 404")):
            with self.assertRaises(FetchError):
                YtDlpSource().list_recent_items("@gone", 5)

    def test_listing_timeout_raises(self):
        with mock.patch(self.target, side_effect=subprocess.TimeoutExpired("yt-dlp", 120)):
            with self.assertRaises(FetchError):
                YtDlpSource().list_recent_items("@slow", 5)

    def test_metadata_failure_returns_none(self):
        with mock.patch(self.target, return_value=_completed(1, stderr="Video unavailable")):
            self.assertIsNone(YtDlpSource().fetch_extended_metadata("aaa"))

    def test_metadata_parsed(self):
        payload = json.dumps({"description": "desc", "tags": ["ai"],
                              "thumbnail": "https://i.ytimg.com/x.jpg", "channel": "Chan"})
        with mock.patch(self.target, return_value=_completed(stdout=payload)):
            meta = YtDlpSource().fetch_extended_metadata("aaa")
        self.assertEqual(meta.description, "desc")
        self.assertEqual(meta.tags, ["ai"])
        self.assertEqual(meta.thumbnail_url, "https://i.ytimg.com/x.jpg")

    def test_existing_asset_is_reused(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            workspace = Path(tmpdir)
            existing = workspace / "source" / "aaa.mp3"
            existing.parent.mkdir()
            existing.write_bytes(b"\x01" * 64)
            with mock.patch(self.target) as run:
                asset = YtDlpSource().fetch_media_asset("aaa", workspace)
            run.assert_not_called()
            self.assertEqual(asset.path, existing)
            self.assertEqual(asset.size_bytes, 64)

    def test_download_failure_returns_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with mock.patch(self.target, return_value=_completed(1, stderr="blocked")):
                self.assertIsNone(YtDlpSource().fetch_media_asset("aaa", Path(tmpdir)))

    def test_thumbnail_downloaded(self):
        resp = mock.Mock(content=b"jpegdata")
        with tempfile.TemporaryDirectory() as tmpdir:
            with mock.patch("requests.get", return_value=resp) as get:
                path = YtDlpSource().fetch_thumbnail("aaa", "https://i.ytimg.com/x.jpg", Path(tmpdir))
            self.assertEqual(path, Path(tmpdir) / "thumbnails" / "aaa.jpg")
            self.assertEqual(path.read_bytes(), b"jpegdata")
        get.assert_called_once()

    def test_existing_thumbnail_is_reused(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            existing = Path(tmpdir) / "thumbnails" / "aaa.jpg"
            existing.parent.mkdir()
            existing.write_bytes(b"cached")
            with mock.patch("requests.get") as get:
                path = YtDlpSource().fetch_thumbnail("aaa", "https://i.ytimg.com/x.jpg", Path(tmpdir))
            get.assert_not_called()
            self.assertEqual(path, existing)

    def test_thumbnail_failure_returns_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with mock.patch("requests.get", side_effect=requests.exceptions.Timeout()):
                self.assertIsNone(
                    YtDlpSource().fetch_thumbnail("aaa", "https://i.ytimg.com/x.jpg", Path(tmpdir)))
            self.assertFalse((Path(tmpdir) / "thumbnails").exists())


class TestReport(unittest.TestCase):
    """Test report rendering and digest."""

    def _result(self, idx, source="@chan", is_new=True, error=None):
        item = Item(id=f"id{idx}", title=f"Video {idx}", source_ref=source,
                    url=f"https://www.youtube.com/watch?v=id{idx}",
                    duration_sec=3725, view_count=1234567, upload_date=date(2024, 5, 1))
        return ItemResult(item=item, is_new=is_new, transcript="hello world",
                          analysis=AnalysisResult("Great video"), error=error)

    def test_format_helpers(self):
        self.assertEqual(format_duration(3725), "1:02:05")
        self.assertEqual(format_duration(125), "2:05")
        self.assertEqual(format_duration(None), "Unknown")
        self.assertEqual(format_number(1234567), "1,234,567")

    def test_render(self):
        results = [
            self._result(1),
            self._result(2, source="@other", is_new=False,
                         error=ErrorRecord(ErrorCode.UNEXPECTED, "download exploded")),
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = MarkdownReporter(Path(tmpdir))
            path = reporter.render(results, "Everyone talks about agents",
                                   now=datetime(2024, 5, 2, 9, 30))
            text = path.read_text()
        self.assertEqual(path.name, "2024-05-02.md")
        self.assertIn("**Channels Analyzed:** 2", text)
        self.assertIn("**New Videos Found:** 1", text)
        self.assertIn("Everyone talks about agents", text)
        self.assertIn("## @other", text)
        self.assertIn("download exploded", text)
        self.assertIn("1:02:05", text)
        self.assertIn("Great video", text)

    def test_summarize_caps_new_items(self):
        results = [self._result(i) for i in range(12)]
        digest = MarkdownReporter(Path("/tmp")).summarize(results, Path("reports/x.md"))
        self.assertIn("Analyzed **12** videos from **1** channels.", digest)
        self.assertIn("...and 2 more", digest)
        self.assertIn("Full report: reports/x.md", digest)

    def test_render_lists_tags(self):
        result = self._result(1)
        result.metadata = ExtendedMetadata(tags=[f"tag{i}" for i in range(15)])
        with tempfile.TemporaryDirectory() as tmpdir:
            text = MarkdownReporter(Path(tmpdir)).render([result], "").read_text()
        self.assertIn("**Tags:** tag0, tag1", text)
        self.assertIn("tag9", text)
        self.assertNotIn("tag10", text)


class TestPostDigest(unittest.TestCase):
    """Test the webhook digest post."""

    def _response(self, status_code, text=""):
        resp = mock.Mock()
        resp.status_code = status_code
        resp.text = text
        return resp

    def test_success(self):
        with mock.patch("requests.post", return_value=self._response(204)) as post:
            self.assertTrue(post_digest("https://hook", "hello"))
        self.assertEqual(post.call_args.kwargs["json"], {"content": "hello"})

    def test_long_text_truncated(self):
        with mock.patch("requests.post", return_value=self._response(204)) as post:
            post_digest("https://hook", "x" * 5000)
        content = post.call_args.kwargs["json"]["content"]
        self.assertEqual(len(content), 2000)
        self.assertTrue(content.endswith("..."))

    def test_network_error_returns_false(self):
        with mock.patch("requests.post",
                        side_effect=requests.exceptions.ConnectionError("refused")):
            with self.assertLogs("channeldigest.core.report", level="WARNING"):
                self.assertFalse(post_digest("https://hook", "hello"))

    def test_error_status_returns_false(self):
        with mock.patch("requests.post", return_value=self._response(400, "bad payload")):
            self.assertFalse(post_digest("https://hook", "hello"))


if __name__ == "__main__":
    unittest.main()
