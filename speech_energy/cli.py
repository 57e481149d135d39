"""Command-line entry point: score a headerless PCM recording."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path

import numpy as np
from pydantic import ValidationError as PayloadValidationError

from speech_energy.analysis.engine import build_analyzer
from speech_energy.analysis.errors import InvalidAudioError
from speech_energy.analysis.payloads import VADMetrics
from speech_energy.common.config import (
    AnalysisConfig,
    ConfigError,
    LoggingConfig,
    get_env_with_default,
    load_config_from_env,
)
from speech_energy.common.structured_logging import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_INVALID_INPUT = 2

_PCM_FORMATS = {
    "f32": (np.dtype("<f4"), 1.0),
    "s16": (np.dtype("<i2"), 32768.0),
}


def read_pcm(path: Path, sample_format: str) -> np.ndarray:
    """Read little-endian mono PCM and scale it to [-1, 1]."""
    dtype, scale = _PCM_FORMATS[sample_format]
    raw = np.fromfile(path, dtype=dtype)
    return raw.astype(np.float64) / scale


def read_vad(path: Path) -> VADMetrics:
    return VADMetrics.model_validate_json(path.read_text(encoding="utf-8"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speech-energy",
        description="Score the speaking energy of a recorded speech sample",
    )
    parser.add_argument("path", type=Path, help="Headerless little-endian mono PCM file")
    parser.add_argument(
        "--sample-rate",
        type=int,
        default=get_env_with_default("SPEECH_ENERGY_SAMPLE_RATE", None, int),
        help="Sample rate in Hz (default: $SPEECH_ENERGY_SAMPLE_RATE)",
    )
    parser.add_argument(
        "--format",
        dest="sample_format",
        choices=sorted(_PCM_FORMATS),
        default="f32",
        help="Sample encoding (default: f32)",
    )
    parser.add_argument("--vad", type=Path, default=None, help="JSON file with speech-activity metrics")
    parser.add_argument("--device-id", default=None, help="Device id for loudness calibration")
    parser.add_argument("--correlation-id", default=None, help="Id attached to every log event")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )
    return parser


def _fail(code: int, error: Exception) -> int:
    print(
        json.dumps({"error": str(error), "error_type": type(error).__name__}, indent=2),
        file=sys.stderr,
    )
    return code


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the speech-energy command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        logging_config = load_config_from_env(LoggingConfig)
        analysis_config = load_config_from_env(AnalysisConfig)
    except ConfigError as exc:
        return _fail(EXIT_CONFIG_ERROR, exc)

    configure_logging(
        args.log_level or logging_config.level,
        json_logs=logging_config.json_logs and not args.console_logs,
        service_name=logging_config.service_name,
    )

    if args.sample_rate is None:
        parser.error("--sample-rate is required when SPEECH_ENERGY_SAMPLE_RATE is not set")

    try:
        samples = read_pcm(args.path, args.sample_format)
        vad = read_vad(args.vad) if args.vad else None
        result = build_analyzer(analysis_config).analyze(
            samples,
            args.sample_rate,
            device_id=args.device_id,
            vad_metrics=vad,
            correlation_id=args.correlation_id,
        )
    except (OSError, InvalidAudioError, PayloadValidationError) as exc:
        logger.error(
            "cli.invalid_input",
            path=str(args.path),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return _fail(EXIT_INVALID_INPUT, exc)

    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
