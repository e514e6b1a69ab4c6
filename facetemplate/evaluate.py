# facetemplate/evaluate.py
"""
Verification benchmark: TPR at a fixed FPR over a list of template pairs.
List format (whitespace separated):
- first token: gallery size g (images per side)
- then groups of 2g+1 tokens: g files, g files, label ("1" = same person)
Outputs:
- genuine / impostor score distributions
- TPR @ FPR 1:N for each divider N
Run:
python -m facetemplate.evaluate pairs.txt --image-root data/benchmark
"""
from __future__ import annotations

import argparse
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .config import EvalConfig, load_config
from .log import get_logger, setup_logging

logger = get_logger(__name__)


# -------------------------
# Metric
# -------------------------

def tpr_threshold(fpr_divider: float, impostor: Sequence[float]) -> Tuple[float, int]:
    """
    Impostor score at rank int(n / fpr_divider) in descending order.
    For pools smaller than the divider this is the highest impostor score;
    a divider of 1 clamps to the lowest one.
    """
    if fpr_divider < 1:
        raise ValueError(f"fpr_divider must be >= 1, got {fpr_divider}")
    if len(impostor) == 0:
        raise ValueError("No impostor scores")
    ranked = sorted((float(s) for s in impostor), reverse=True)
    index = min(int(len(ranked) / fpr_divider), len(ranked) - 1)
    return ranked[index], index


def calculate_tpr(fpr_divider: float, impostor: Sequence[float], genuine: Sequence[float]) -> float:
    """Fraction of genuine scores strictly above the 1:fpr_divider impostor threshold."""
    if len(genuine) == 0:
        raise ValueError("No genuine scores")
    threshold, index = tpr_threshold(fpr_divider, impostor)
    logger.info(f"Border score: {threshold} (at index {index})")
    tp = sum(1 for s in genuine if float(s) > threshold)
    return tp / float(len(genuine))


@dataclass
class ScorePool:
    genuine: List[float] = field(default_factory=list)
    impostor: List[float] = field(default_factory=list)

    def add(self, score: float, same: bool) -> None:
        if same:
            self.genuine.append(float(score))
        else:
            self.impostor.append(float(score))

    def tpr(self, fpr_divider: float) -> float:
        return calculate_tpr(fpr_divider, self.impostor, self.genuine)


def describe(arr: Sequence[float]) -> str:
    a = np.asarray(arr, dtype=np.float64)
    if a.size == 0:
        return "n=0"
    return (
        f"n={a.size} mean={a.mean():.3f} std={a.std():.3f} "
        f"p05={np.percentile(a, 5):.3f} p50={np.percentile(a, 50):.3f} p95={np.percentile(a, 95):.3f}"
    )


# -------------------------
# Pair list
# -------------------------

@dataclass
class PairEntry:
    files_a: List[str]
    files_b: List[str]
    same: bool


def parse_pair_list(tokens: Sequence[str]) -> Iterator[PairEntry]:
    if not tokens:
        raise ValueError("Empty pair list")
    gallery_size = int(tokens[0])
    if gallery_size <= 0:
        raise ValueError(f"Invalid gallery size: {gallery_size}")
    group = gallery_size * 2 + 1
    body = tokens[1:]
    if len(body) % group != 0:
        raise ValueError(f"Pair list has {len(body)} entries, not a multiple of {group}")

    for i in range(0, len(body), group):
        yield PairEntry(
            files_a=list(body[i:i + gallery_size]),
            files_b=list(body[i + gallery_size:i + 2 * gallery_size]),
            same=body[i + 2 * gallery_size] == "1",
        )


def read_pair_list(list_path: Path) -> List[PairEntry]:
    with open(list_path, "r", encoding="utf-8") as f:
        tokens = f.read().split()
    return list(parse_pair_list(tokens))


def load_images(files: Sequence[str], image_root: Path) -> List[np.ndarray]:
    images = []
    for name in files:
        path = image_root / name
        img = cv2.imread(str(path))
        if img is None:
            raise RuntimeError(f"Could not open or find the image: {path}")
        images.append(img)
    return images


def run_pair_list(pairs: Sequence[PairEntry], pipeline, image_root: Path, cfg: Optional[EvalConfig] = None) -> ScorePool:
    """Score every pair with pipeline.create_template / match_templates."""
    cfg = cfg or EvalConfig()
    pool = ScorePool()
    t0 = time.time()
    for n, pair in enumerate(pairs, start=1):
        tmpl_a, _ = pipeline.create_template(load_images(pair.files_a, image_root))
        tmpl_b, _ = pipeline.create_template(load_images(pair.files_b, image_root))
        pool.add(pipeline.match_templates(tmpl_a, tmpl_b), pair.same)

        if cfg.log_every > 0 and (n % cfg.log_every == 0 or n == len(pairs)):
            elapsed = time.time() - t0
            logger.info(f"{n}/{len(pairs)} pairs | {elapsed / n:.3f}s per pair")
    return pool


# -------------------------
# CLI
# -------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TPR @ FPR over a list of template pairs")
    parser.add_argument("list_path", type=Path, help="pair list file")
    parser.add_argument("--image-root", type=Path, default=None, help="directory the list's file names are relative to")
    parser.add_argument("--config", type=Path, default=None, help="JSON configuration file")
    parser.add_argument("--models-dir", default=None, help="directory holding the model files")
    parser.add_argument("--fpr", type=int, nargs="+", default=None, help="FPR dividers (default: 10 100 1000)")
    parser.add_argument("--flip-check", action="store_true", help="enable the flip consistency check")
    parser.add_argument("--debug", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.debug)

    from .pipeline import TemplatePipeline

    cfg = load_config(args.config)
    if args.models_dir:
        cfg.models_dir = args.models_dir
    if args.flip_check:
        cfg.landmarks.check_flip_consistency = True
    if args.fpr:
        cfg.evaluation.fpr_dividers = tuple(args.fpr)
    cfg.validate()
    image_root = args.image_root or Path(cfg.evaluation.image_root)

    pairs = read_pair_list(args.list_path)
    logger.info(f"List path: {args.list_path} ({len(pairs)} pairs)")

    pipeline = TemplatePipeline.from_config(cfg, debug=args.debug)
    pool = run_pair_list(pairs, pipeline, image_root, cfg.evaluation)

    print("\n=== Score Distributions ===")
    print(f"Genuine (same person): {describe(pool.genuine)}")
    print(f"Impostor (diff persons): {describe(pool.impostor)}")
    print()
    for divider in cfg.evaluation.fpr_dividers:
        print(f"TPR @ FPR 1:{divider} = {pool.tpr(divider)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
