"""Tests for the speech-energy command."""

import json

import numpy as np
import pytest

from speech_energy.cli import EXIT_CONFIG_ERROR, EXIT_INVALID_INPUT, EXIT_OK, main, read_pcm

SAMPLE_RATE = 16000


@pytest.fixture
def cli_env(monkeypatch, isolated_structlog):
    for name in (
        "LOG_LEVEL",
        "LOG_JSON",
        "SERVICE_NAME",
        "SPEECH_ENERGY_TARGET_LUFS",
        "SPEECH_ENERGY_MAX_NORMALIZATION_GAIN",
        "SPEECH_ENERGY_USER_SETTINGS_PATH",
        "SPEECH_ENERGY_DEFAULT_SETTINGS_PATH",
        "SPEECH_ENERGY_CALIBRATION_PATH",
        "SPEECH_ENERGY_SAMPLE_RATE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def silent_f32(tmp_path):
    path = tmp_path / "silence.f32"
    np.zeros(2 * SAMPLE_RATE, dtype="<f4").tofile(path)
    return path


class TestReadPcm:
    @pytest.mark.unit
    def test_s16_is_scaled(self, tmp_path):
        path = tmp_path / "clip.s16"
        np.array([0, 16384, -32768], dtype="<i2").tofile(path)

        np.testing.assert_allclose(read_pcm(path, "s16"), [0.0, 0.5, -1.0])

    @pytest.mark.unit
    def test_f32_passthrough(self, tmp_path):
        path = tmp_path / "clip.f32"
        np.array([0.25, -0.5], dtype="<f4").tofile(path)

        np.testing.assert_allclose(read_pcm(path, "f32"), [0.25, -0.5])


class TestMain:
    """End-to-end command behaviour."""

    @pytest.mark.integration
    def test_prints_result_json(self, cli_env, silent_f32, capsys):
        code = main([str(silent_f32), "--sample-rate", str(SAMPLE_RATE)])

        captured = capsys.readouterr()
        result = json.loads(captured.out)
        assert code == EXIT_OK
        assert result["volume"]["score"] == 0
        assert result["responseTime"]["responseTimeMs"] == 2000
        assert result["pauses"]["pauseRatio"] == 1.0
        assert result["emotionalFeedback"] == "poor"

    @pytest.mark.integration
    def test_sample_rate_from_environment(self, cli_env, silent_f32, capsys):
        cli_env.setenv("SPEECH_ENERGY_SAMPLE_RATE", str(SAMPLE_RATE))

        assert main([str(silent_f32)]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["overallScore"] == 12

    @pytest.mark.integration
    def test_missing_sample_rate(self, cli_env, silent_f32):
        with pytest.raises(SystemExit) as exc_info:
            main([str(silent_f32)])

        assert exc_info.value.code == 2

    @pytest.mark.integration
    def test_vad_file(self, cli_env, silent_f32, tmp_path, capsys):
        vad = tmp_path / "vad.json"
        vad.write_text(json.dumps({"speechRatio": 0.75, "speechSegments": []}), encoding="utf-8")

        code = main([str(silent_f32), "--sample-rate", str(SAMPLE_RATE), "--vad", str(vad)])

        result = json.loads(capsys.readouterr().out)
        assert code == EXIT_OK
        assert result["pauses"]["source"] == "vad"
        assert result["pauses"]["pauseRatio"] == 0.25

    @pytest.mark.integration
    def test_empty_file_is_invalid_input(self, cli_env, tmp_path, capsys):
        path = tmp_path / "empty.f32"
        path.write_bytes(b"")

        code = main([str(path), "--sample-rate", str(SAMPLE_RATE), "--console-logs"])

        assert code == EXIT_INVALID_INPUT
        assert "InvalidAudioError" in capsys.readouterr().err

    @pytest.mark.integration
    def test_missing_file_is_invalid_input(self, cli_env, tmp_path):
        code = main([str(tmp_path / "absent.f32"), "--sample-rate", str(SAMPLE_RATE)])

        assert code == EXIT_INVALID_INPUT

    @pytest.mark.integration
    def test_malformed_vad_is_invalid_input(self, cli_env, silent_f32, tmp_path):
        vad = tmp_path / "vad.json"
        vad.write_text('{"speechRatio": 3}', encoding="utf-8")

        code = main([str(silent_f32), "--sample-rate", str(SAMPLE_RATE), "--vad", str(vad)])

        assert code == EXIT_INVALID_INPUT

    @pytest.mark.integration
    def test_invalid_environment_config(self, cli_env, silent_f32, capsys):
        cli_env.setenv("SPEECH_ENERGY_TARGET_LUFS", "-3")

        code = main([str(silent_f32), "--sample-rate", str(SAMPLE_RATE)])

        assert code == EXIT_CONFIG_ERROR
        assert "target_lufs" in capsys.readouterr().err

    @pytest.mark.integration
    def test_calibrated_device(self, cli_env, tmp_path, capsys):
        t = np.arange(2 * SAMPLE_RATE) / SAMPLE_RATE
        path = tmp_path / "tone.f32"
        (0.05 * np.sin(2 * np.pi * 200 * t)).astype("<f4").tofile(path)
        calibration = tmp_path / "calibration.json"
        calibration.write_text(json.dumps({"usb-1": {"gainAdjustment": 2.0}}), encoding="utf-8")
        cli_env.setenv("SPEECH_ENERGY_CALIBRATION_PATH", str(calibration))

        code = main([str(path), "--sample-rate", str(SAMPLE_RATE), "--device-id", "usb-1"])

        result = json.loads(capsys.readouterr().out)
        assert code == EXIT_OK
        assert result["normalization"]["deviceGain"] == 2.0
