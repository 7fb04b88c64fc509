"""
Tests for RecordedFrameSource and the command-line replay.
OpenCV's VideoCapture is replaced with an in-memory fake.
Run with:  pytest tests/
"""

from __future__ import annotations

import json

import numpy as np
import pytest

import vitalscan.frame_source as frame_source
from vitalscan.frame_source import RecordedFrameSource

import main as cli

from conftest import make_landmarks


class FakeCapture:
    """Stands in for cv2.VideoCapture, producing uniform green frames."""

    n_frames = 0
    opened = True

    def __init__(self, path):
        self.path = path
        self._pos = 0

    def isOpened(self):
        return self.opened

    def read(self):
        if self._pos >= self.n_frames:
            return False, None
        self._pos += 1
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        frame[:, :, 1] = 100 + (self._pos % 5)
        return True, frame

    def get(self, prop):
        if prop == frame_source.cv2.CAP_PROP_POS_MSEC:
            return self._pos * 1000.0 / 30.0
        return 30.0

    def release(self):
        pass


@pytest.fixture
def fake_video(monkeypatch):
    def install(n_frames, opened=True):
        FakeCapture.n_frames = n_frames
        FakeCapture.opened = opened
        monkeypatch.setattr(frame_source.cv2, "VideoCapture", FakeCapture)
    return install


def _write_track(path, n, lost=()):
    track = []
    for i in range(n):
        lm = None if i in lost else make_landmarks()
        track.append({"timestamp_ms": int(round(i * 1000 / 30)), "landmarks": lm})
    path.write_text(json.dumps(track))
    return path


class TestRecordedFrameSource:

    def test_yields_track_entries(self, tmp_path, fake_video):
        fake_video(10)
        track = _write_track(tmp_path / "t.json", 5, lost={2})
        with RecordedFrameSource("scan.mp4", track) as src:
            frames = list(src.frames())
        assert [f[0] for f in frames] == [0, 33, 67, 100, 133]
        assert frames[2][1] is None
        assert frames[0][2](0.5, 0.5, 10) == pytest.approx(101.0)

    def test_stops_when_video_ends(self, tmp_path, fake_video):
        fake_video(3)
        track = _write_track(tmp_path / "t.json", 10)
        with RecordedFrameSource("scan.mp4", track) as src:
            assert len(list(src.frames())) == 3

    def test_decoder_timestamp_when_missing(self, tmp_path, fake_video):
        fake_video(2)
        path = tmp_path / "t.json"
        path.write_text(json.dumps([{"landmarks": None}, {"landmarks": None}]))
        with RecordedFrameSource("scan.mp4", path) as src:
            assert [f[0] for f in src.frames()] == [33, 66]

    def test_unopenable_video(self, tmp_path, fake_video):
        fake_video(0, opened=False)
        track = _write_track(tmp_path / "t.json", 1)
        with pytest.raises(RuntimeError):
            RecordedFrameSource("missing.mp4", track).open()

    def test_frames_requires_open(self, tmp_path):
        track = _write_track(tmp_path / "t.json", 1)
        with pytest.raises(RuntimeError):
            next(RecordedFrameSource("scan.mp4", track).frames())

    def test_track_must_be_list(self, tmp_path):
        path = tmp_path / "t.json"
        path.write_text("{}")
        with pytest.raises(ValueError):
            RecordedFrameSource("scan.mp4", path)

    def test_entries_must_be_objects(self, tmp_path):
        path = tmp_path / "t.json"
        path.write_text(json.dumps([{"landmarks": None}, [1, 2]]))
        with pytest.raises(ValueError, match="entry 1"):
            RecordedFrameSource("scan.mp4", path)


class TestCommandLine:

    def test_full_replay_with_ranking(self, tmp_path, fake_video, capsys):
        n = 260      # 200 ms debounce + 1 s calibration + 6 s window at 30 fps
        fake_video(n)
        track = _write_track(tmp_path / "t.json", n)
        history = tmp_path / "history.json"
        rc = cli.main([
            "--video", "scan.mp4", "--landmarks", str(track),
            "--profile", "heart_rate", "--history", str(history),
            "--wellness", "70", "--estimated-age", "25-30", "--json",
        ])
        out = capsys.readouterr().out
        assert rc == 0
        assert "HR=" in out
        assert '"biometrics"' in out
        assert "percentile 85 in age bucket 20-29" in out
        assert json.loads(history.read_text())[0]["wellnessIndex"] == 70

    def test_incomplete_recording(self, tmp_path, fake_video):
        fake_video(60)
        track = _write_track(tmp_path / "t.json", 60)
        rc = cli.main(["--video", "scan.mp4", "--landmarks", str(track)])
        assert rc == 2

    def test_face_lost_mid_scan(self, tmp_path, fake_video):
        n = 260
        fake_video(n)
        track = _write_track(tmp_path / "t.json", n, lost={150})
        rc = cli.main(["--video", "scan.mp4", "--landmarks", str(track),
                       "--profile", "heart_rate"])
        assert rc == 2

    def test_invalid_wellness(self, tmp_path):
        rc = cli.main(["--video", "scan.mp4", "--landmarks", "t.json",
                       "--wellness", "0"])
        assert rc == 1

    def test_malformed_track_entry(self, tmp_path):
        path = tmp_path / "t.json"
        path.write_text(json.dumps([[1, 2]]))
        rc = cli.main(["--video", "scan.mp4", "--landmarks", str(path)])
        assert rc == 1

    def test_missing_track_file(self, tmp_path):
        rc = cli.main(["--video", "scan.mp4",
                       "--landmarks", str(tmp_path / "absent.json")])
        assert rc == 1
