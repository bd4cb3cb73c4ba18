#!/usr/bin/env python3
"""
labocr CLI - Run and evaluate the lab report extraction pipeline.

Usage:
    labocr extract report.jpg --raw
    labocr evaluate data/ground_truth.json --images-dir test_images --workers 2
    labocr benchmark test_images/
    labocr serve --port 5000
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from labocr.config import Settings, get_settings
from labocr.errors import GroundTruthError, LabOCRError
from labocr.services.benchmark import find_images, run_benchmark
from labocr.services.evaluation import BatchEvaluator, load_ground_truth, resolve_cases
from labocr.services.ocr import create_adapter
from labocr.services.pipeline import ExtractionPipeline

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def build_pipeline(settings: Settings) -> ExtractionPipeline:
    """Create a pipeline with its own OCR adapter."""
    return ExtractionPipeline.from_settings(settings, create_adapter(settings))


def cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    """Extract fields from one or more images."""
    pipeline = build_pipeline(settings)
    outputs = []
    exit_code = 0

    try:
        for image_path in args.images:
            try:
                run = pipeline.process(image_path)
            except LabOCRError as e:
                print(f"Error processing {image_path}: {e}", file=sys.stderr)
                exit_code = 1
                continue

            if args.json:
                outputs.append({"image": str(image_path), **run.to_dict()})
                continue

            result = run.result
            print(f"\n{'=' * 70}")
            print(f"Processing: {image_path.name}")
            print(f"{'=' * 70}")
            print(f"  Reported Date:    {result.reported_date}")
            print(f"  Month:            {result.month}")
            print(f"  Serum Creatinine: {result.serum_creatinine}")
            print(f"  Time:             {run.total_time_ms:.0f}ms")
            if args.raw:
                print("-" * 70)
                print(run.raw_text)
    finally:
        pipeline.ocr.close()

    if args.json:
        print(json.dumps(outputs, indent=2, ensure_ascii=False))
    return exit_code


def cmd_evaluate(args: argparse.Namespace, settings: Settings) -> int:
    """Score the pipeline against a ground truth file."""
    ground_truth_path = args.ground_truth or settings.ground_truth_path
    images_dir = args.images_dir or settings.images_dir
    workers = args.workers or settings.batch_workers

    try:
        records = load_ground_truth(ground_truth_path)
    except GroundTruthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    with BatchEvaluator(lambda: build_pipeline(settings), workers=workers) as evaluator:
        report = evaluator.evaluate(resolve_cases(records, images_dir))

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return 0

    for case in sorted(report.cases, key=lambda c: c.index):
        print(f"\nTesting image: {case.image_id}")
        if case.failed:
            print(f"  FAILED ({case.error_type}): {case.error}")
            continue
        print(f"  Word-Level Accuracy (Date): {case.metrics.word_accuracy:.2f}%")
        print(f"  Character-Level Accuracy (Creatinine): {case.metrics.char_accuracy:.2f}%")
        print(f"  Levenshtein Distance (Creatinine): {case.metrics.levenshtein_distance}")

    print("\n" + "=" * 70)
    print("BATCH SUMMARY")
    print("=" * 70)
    print(f"Images: {len(report.cases)} (evaluated {report.evaluated_count}, excluded {report.excluded_count})")

    mean = report.mean
    if mean is None:
        print("No images evaluated; no overall accuracy.")
        return 1

    print(f"Overall Word-Level Accuracy (Date): {mean.word_accuracy:.2f}%")
    print(f"Overall Character-Level Accuracy (Creatinine): {mean.char_accuracy:.2f}%")
    print(f"Overall Levenshtein Distance (Creatinine): {mean.levenshtein_distance:.2f}")
    return 0


def cmd_benchmark(args: argparse.Namespace, settings: Settings) -> int:
    """Time the pipeline over a directory of images."""
    image_paths = find_images(args.directory)
    if not image_paths:
        print(f"No images found in {args.directory}", file=sys.stderr)
        return 1

    pipeline = build_pipeline(settings)
    try:
        report = run_benchmark(pipeline, image_paths)
    finally:
        pipeline.ocr.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return 0

    for sample in report.samples:
        if sample.failed:
            print(f"Failed on: {sample.image}: {sample.error}")
            continue
        print(f"Processed: {sample.image}")
        print(f"   Time: {sample.time_ms:.0f} ms")
        print(f"   Image Size: {sample.size_bytes / 1024:.2f} KB\n")

    if report.avg_time_ms is None:
        print("All images failed.")
        return 1

    print("Average Performance Metrics:")
    print(f"   Avg Time: {report.avg_time_ms:.2f} ms")
    print(f"   Avg Image Size: {report.avg_size_bytes / 1024:.2f} KB")
    return 0


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run the HTTP service."""
    import uvicorn

    from labocr.main import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="labocr",
        description="Extract and evaluate lab report fields from OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract fields and show the raw OCR text
  labocr extract report.jpg --raw

  # Score against ground truth with two parallel pipelines
  labocr evaluate data/ground_truth.json --images-dir test_images --workers 2

  # Time normalization + OCR
  labocr benchmark test_images/
        """,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from settings)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract fields from images")
    extract.add_argument("images", nargs="+", type=Path, help="Lab report images")
    extract.add_argument("--raw", action="store_true", help="Print raw OCR text")
    extract.add_argument("--json", "-j", action="store_true", help="Print JSON output")
    extract.set_defaults(handler=cmd_extract)

    evaluate = subparsers.add_parser("evaluate", help="Score extraction against ground truth")
    evaluate.add_argument("ground_truth", nargs="?", type=Path, help="Ground truth JSON/CSV")
    evaluate.add_argument("--images-dir", type=Path, help="Base directory for image paths")
    evaluate.add_argument("--workers", type=int, help="Parallel pipelines")
    evaluate.add_argument("--json", "-j", action="store_true", help="Print JSON report")
    evaluate.set_defaults(handler=cmd_evaluate)

    benchmark = subparsers.add_parser("benchmark", help="Time the pipeline on a directory")
    benchmark.add_argument("directory", type=Path, help="Directory of JPG/PNG images")
    benchmark.add_argument("--json", "-j", action="store_true", help="Print JSON report")
    benchmark.set_defaults(handler=cmd_benchmark)

    serve = subparsers.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=5000)
    serve.set_defaults(handler=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    setup_logging(args.log_level or settings.log_level)

    return args.handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())
