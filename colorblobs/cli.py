"""Command-line interface for colorblobs."""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image

from colorblobs.categorization import ColorCategorizer
from colorblobs.clustering import cluster_histogram, cluster_regions, train_region_som
from colorblobs.evaluation import color_fit_grid, evaluate_segmentation
from colorblobs.features import image_descriptor
from colorblobs.model_io import load_palette, load_perceptron, load_som, save_som
from colorblobs.ordering import central_region, foveal_ordering
from colorblobs.palette import kmeans_palette, mean_color_palette, render_labels
from colorblobs.pipeline import BlobPipeline, BlobResult
from colorblobs.raster_ingest import load_rgb
from colorblobs.types import SegmentationConfig, SegmentationError

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = [
    "cx", "cy", "vol", "relative_vol",
    "mean_r", "mean_g", "mean_b",
    "std_r", "std_g", "std_b",
    "skew_r", "skew_g", "skew_b",
]


def _add_segmentation_args(parser: argparse.ArgumentParser) -> None:
    palette = parser.add_mutually_exclusive_group()
    palette.add_argument(
        '--palette',
        type=str,
        help='Palette table file (one "R G B" row per color, row 0 is the background)'
    )
    palette.add_argument(
        '--colors',
        type=int,
        default=8,
        help='Number of k-means colors when no palette is given (default: 8)'
    )
    parser.add_argument(
        '--classifier',
        type=str,
        default=None,
        help='Color classification perceptron (XML); requires --palette'
    )
    parser.add_argument(
        '--threshold',
        type=float,
        default=None,
        help='Classifier rejection threshold (default: 0.5)'
    )
    parser.add_argument(
        '--min-volume',
        type=float,
        default=None,
        help='Minimum region volume as a fraction of the image'
    )
    parser.add_argument(
        '--connectivity',
        type=int,
        choices=[4, 8],
        default=4,
        help='Pixel connectivity of regions (default: 4)'
    )
    parser.add_argument(
        '--no-resize',
        action='store_true',
        help='Segment at full size, without color correction and blur'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='colorblobs',
        description='Color blob segmentation and region features'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase log verbosity (-v info, -vv debug)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    seg = subparsers.add_parser('segment', help='Segment an image and print its regions')
    seg.add_argument('input', type=str, help='Input image path')
    _add_segmentation_args(seg)
    seg.add_argument('-o', '--output', type=str, help='Write the mean-color region image (PNG)')
    seg.add_argument('--features', type=str, help='Write the region feature table (CSV)')

    order = subparsers.add_parser('order', help='Print the foveal ordering of the regions')
    order.add_argument('input', type=str, help='Input image path')
    _add_segmentation_args(order)
    order.add_argument(
        '--reference',
        type=int,
        default=None,
        help='Reference region id (default: the most central region)'
    )

    cluster = subparsers.add_parser('cluster', help='Cluster regions with a trained SOM')
    cluster.add_argument('input', type=str, help='Input image path')
    _add_segmentation_args(cluster)
    cluster.add_argument('--som', type=str, required=True, help='SOM file')

    train = subparsers.add_parser('train-som', help='Train a region SOM on several images')
    train.add_argument('inputs', nargs='+', help='Training images')
    _add_segmentation_args(train)
    train.add_argument('--outputs', type=int, required=True, help='Number of clusters')
    train.add_argument('--save', type=str, required=True, help='Output SOM file')
    train.add_argument('--seed', type=int, default=None, help='Random seed')

    return parser


def _build_config(args) -> SegmentationConfig:
    options = {'connectivity': args.connectivity}
    if args.threshold is not None:
        options['rejection_threshold'] = args.threshold
    if args.min_volume is not None:
        options['volume_threshold'] = args.min_volume
        options['blob_volume_threshold'] = args.min_volume
    return SegmentationConfig(**options)


def _build_pipeline(args, image: np.ndarray, config: SegmentationConfig) -> BlobPipeline:
    classifier = None
    if args.classifier:
        if not args.palette:
            raise SegmentationError("--classifier requires --palette")
        classifier = load_perceptron(args.classifier)

    if args.palette:
        palette = load_palette(args.palette)
    else:
        palette = kmeans_palette(image, args.colors)

    categorizer = ColorCategorizer(palette, classifier, config.rejection_threshold)
    return BlobPipeline(categorizer, config, resize=not args.no_resize)


def _run(args, path: str) -> BlobResult:
    config = _build_config(args)
    image = load_rgb(path)
    return _build_pipeline(args, image, config).process(image)


def _segment(args) -> int:
    result = _run(args, args.input)
    seg = result.segmentation

    print(f"{seg} ({seg.width}x{seg.height})")
    for region in seg.foreground:
        cx, cy = region.centroid
        print(f"  [{region.id}] category={region.color_category} vol={region.vol:.4f} "
              f"center=({cx:.3f}, {cy:.3f}) rvol={region.relative_vol:.3f}")
    print(f"Descriptor: {image_descriptor(seg)}")

    if args.classifier:
        fit = result.confidence
    else:
        fit = color_fit_grid(seg)
    print(f"F(I) = {evaluate_segmentation(seg, fit):.6f}")

    if args.output:
        rgb = render_labels(seg.labels, mean_color_palette(seg))
        Image.fromarray(rgb).save(args.output)
        print(f"Region image saved: {args.output}")

    if args.features:
        np.savetxt(args.features, seg.features(), delimiter=',',
                   header=','.join(FEATURE_COLUMNS), comments='', fmt='%.6f')
        print(f"Features saved: {args.features}")

    return 0


def _order(args) -> int:
    seg = _run(args, args.input).segmentation
    reference = args.reference if args.reference is not None else central_region(seg)
    order = foveal_ordering(seg, reference, levels=_build_config(args).foveal_levels)
    print(f"Reference region: {reference}")
    print("Foveal ordering: " + " ".join(str(i) for i in order))
    return 0


def _cluster(args) -> int:
    som = load_som(args.som)
    seg = _run(args, args.input).segmentation
    clusters = cluster_regions(seg, som)
    for region, cluster in zip(seg.foreground, clusters):
        print(f"  [{region.id}] cluster={cluster} vol={region.vol:.4f}")
    histogram = cluster_histogram(seg, som.nout)
    print("Cluster histogram: " + " ".join(f"{v:.4f}" for v in histogram))
    return 0


def _train_som(args) -> int:
    config = _build_config(args)
    segmentations = [_run(args, path).segmentation for path in args.inputs]
    rng = np.random.default_rng(args.seed)
    som = train_region_som(segmentations, args.outputs, config, rng)
    save_som(som, args.save)
    print(f"{som} saved: {args.save}")
    return 0


COMMANDS = {
    'segment': _segment,
    'order': _order,
    'cluster': _cluster,
    'train-som': _train_som,
}


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    level = logging.WARNING
    if parsed_args.verbose == 1:
        level = logging.INFO
    elif parsed_args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    inputs = getattr(parsed_args, 'inputs', None) or [parsed_args.input]
    for path in inputs:
        if not Path(path).exists():
            print(f"Error: Input file not found: {path}", file=sys.stderr)
            return 1

    try:
        return COMMANDS[parsed_args.command](parsed_args)
    except (SegmentationError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
