"""
Command-Line Interface for kokoro-speech.

Serverless synthesis through the same validation, voice resolution and
dispatch path as the HTTP endpoint.

Usage Examples:
    # Synthesize to MP3
    kokoro-speech "Hello world" --voice af_heart --out hello.mp3

    # WAV output at a faster rate
    kokoro-speech --text "Hello world" --format wav --speed 1.25 --out hello.wav

    # Dry-run: validate and resolve, print the engine request, no synthesis
    kokoro-speech --text "Test" --voice bf_emma --dry-run --json

    # Catalog listings
    kokoro-speech --voices
    kokoro-speech --models

Exit Codes:
    0: Success
    1: Synthesis failed
    2: Request failed validation

Environment Variables:
    KOKORO_SPEECH_SETTINGS: Settings file (default config/settings.yaml)
    KOKORO_SPEECH_ENGINE: Engine override (kokoro, tone)
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from kokoro_speech.core.config import ServiceConfig, load_settings
from kokoro_speech.core.logging import configure_logging, get_logger, info, set_request_id
from kokoro_speech.services.speech_service import SpeechError, SpeechService, build_engine_request
from kokoro_speech.services.validators import SpeechValidationError, parse_speech_request
from kokoro_speech.services.voices import resolve_voice
from kokoro_speech.tts.catalog import Catalog, load_catalog
from kokoro_speech.tts.engine import EngineRequest, get_engine

EXIT_OK = 0
EXIT_SYNTHESIS_FAILED = 1
EXIT_INVALID = 2


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="kokoro-speech CLI (serverless synth)")

    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")

    parser.add_argument("--model", help="Model id (default: engine.warmup_model)")
    parser.add_argument("--voice", help="Voice id (default: catalog.default_voice)")
    parser.add_argument("--format", dest="response_format", choices=["mp3", "wav"],
                        default="mp3", help="Output format")
    parser.add_argument("--speed", type=float, default=1.0, help="Speaking rate (0.25-5)")
    parser.add_argument("--out", help="Output path (default: out.<format>)")
    parser.add_argument("--settings", help="Settings file path")

    parser.add_argument("--dry-run", action="store_true",
                        help="Validate and resolve without synthesis")
    parser.add_argument("--json", action="store_true", help="Print JSON summary")

    parser.add_argument("--voices", action="store_true", help="List catalog voices")
    parser.add_argument("--models", action="store_true", help="List catalog models")

    return parser.parse_args(argv)


def _print(payload: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def _list_catalog(catalog: Catalog, args: argparse.Namespace) -> None:
    if args.models:
        if args.json:
            print(json.dumps({"models": list(catalog.model_ids)}))
        else:
            for model in catalog.models:
                print(f"{model.id}\t{model.name}")
    if args.voices:
        if args.json:
            print(json.dumps({"voices": [
                {"id": v.id, "name": v.name, "gender": v.gender, "language": v.language.id}
                for v in catalog.voices.values()
            ]}))
        else:
            for v in catalog.voices.values():
                print(f"{v.id}\t{v.name}\t{v.gender}\t{v.language.id}")


def _describe(engine_request: EngineRequest) -> Dict[str, Any]:
    """Summarize an engine request; the text itself is not echoed."""
    return {
        "text_len": len(engine_request.text),
        "model": engine_request.model_id,
        "language": engine_request.language_id,
        "voices": [{"id": v.voice_id, "weight": v.weight} for v in engine_request.voices],
        "speed": engine_request.speed,
        "format": engine_request.format.value,
        "use_acceleration": engine_request.use_acceleration,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Exit code (0 success, 1 synthesis failure, 2 invalid request).
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("kokoro-speech.cli")
    rid = str(uuid4())[:12]
    set_request_id(rid)

    settings = load_settings(args.settings, missing_ok=args.settings is None)
    config = ServiceConfig.from_settings(settings)
    catalog = load_catalog(default_voice=config.default_voice)

    if args.voices or args.models:
        _list_catalog(catalog, args)
        return EXIT_OK

    text = args.text if args.text is not None else args.text_pos
    payload: Dict[str, Any] = {
        "model": args.model or config.engine.warmup_model or catalog.model_ids[0],
        "voice": args.voice or catalog.default_voice_id,
        "response_format": args.response_format,
        "speed": args.speed,
    }
    if text is not None:
        payload["input"] = text

    try:
        request = parse_speech_request(payload, catalog)
    except SpeechValidationError as e:
        if args.json:
            print(json.dumps(e.to_dict(), ensure_ascii=False))
        else:
            print(e.message)
        return EXIT_INVALID

    if args.dry_run:
        engine_request = build_engine_request(request, resolve_voice(request.voice_id, catalog))
        info(log, "dry_run", model=request.model_id, voice=request.voice_id)
        _print({"ok": True, "dry_run": True, "request": _describe(engine_request)}, args.json)
        print("DRY_RUN_OK")
        return EXIT_OK

    service = SpeechService(
        catalog=catalog,
        engine=get_engine(settings),
        timeout_s=config.engine.timeout_s,
    )
    out_path = Path(args.out or f"out.{request.response_format.value}")

    try:
        result = asyncio.run(service.synthesize(request, rid))
    except SpeechError as e:
        _print(e.to_dict(), args.json)
        return EXIT_SYNTHESIS_FAILED

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.buffer)

    _print({
        "ok": True,
        "dry_run": False,
        "out": str(out_path),
        "bytes": len(result.buffer),
        "mime_type": result.mime_type,
        "sample_rate": result.sample_rate,
    }, args.json)
    print("CLI_OK")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
