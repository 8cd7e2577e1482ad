"""Reading and writing palettes and trained networks."""
from pathlib import Path
from typing import Iterable, Optional, Union
import logging
import re
import xml.etree.ElementTree as ET
from xml.dom import minidom

import numpy as np

from colorblobs.perceptron import Layer, Perceptron
from colorblobs.som import SOM
from colorblobs.types import PaletteError, ModelFormatError

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

PathLike = Union[str, Path]


def _read_text(path: PathLike, error_cls) -> str:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (IOError, OSError, UnicodeDecodeError) as e:
        raise error_cls(f"Failed to read {path}: {e}") from e


def parse_palette(lines: Iterable[str], max_entries: Optional[int] = None) -> np.ndarray:
    """
    Parse a palette table of ``R G B`` integers, one entry per row.

    Blank lines and lines starting with ``#`` are skipped; extra columns
    are ignored.

    Returns:
        (K, 3) uint8 palette

    Raises:
        PaletteError: On malformed rows, out of range values or when no
            entry is found
    """
    entries = []
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        tokens = line.split()
        if len(tokens) < 3:
            raise PaletteError(f"line {lineno}: expected 'R G B', got {line!r}")
        try:
            rgb = [int(t) for t in tokens[:3]]
        except ValueError as e:
            raise PaletteError(f"line {lineno}: {e}") from e
        if any(c < 0 or c > 255 for c in rgb):
            raise PaletteError(f"line {lineno}: values must be in 0..255, got {rgb}")
        entries.append(rgb)
        if max_entries is not None and len(entries) >= max_entries:
            break

    if not entries:
        raise PaletteError("palette is empty")

    return np.array(entries, dtype=np.uint8)


def load_palette(path: PathLike, max_entries: Optional[int] = None) -> np.ndarray:
    """Load a palette table from a text file. See :func:`parse_palette`."""
    palette = parse_palette(_read_text(path, PaletteError).splitlines(), max_entries)
    logger.info(f"Loaded {len(palette)} palette entries from {path}")
    return palette


def save_palette(palette: np.ndarray, path: PathLike) -> None:
    lines = [f"{int(r)} {int(g)} {int(b)}" for r, g, b in np.asarray(palette)]
    Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")


def parse_som(text: str) -> SOM:
    """
    Parse a SOM from a tagged-number stream.

    Every numeric token counts, anything else is ignored. The first two
    numbers are ``nin nout``, followed by ``nin * nout`` weights, one unit
    after another.
    """
    numbers = [float(tok) for tok in _NUMBER.findall(text)]
    if len(numbers) < 2:
        raise ModelFormatError("SOM stream has no 'nin nout' header")

    nin, nout = int(numbers[0]), int(numbers[1])
    if nin < 1 or nout < 1:
        raise ModelFormatError(f"invalid SOM size: nin={nin}, nout={nout}")

    weights = numbers[2:2 + nin * nout]
    if len(weights) < nin * nout:
        raise ModelFormatError(
            f"SOM stream has {len(weights)} weights, expected {nin * nout}")

    return SOM(np.array(weights).reshape(nout, nin))


def load_som(path: PathLike) -> SOM:
    som = parse_som(_read_text(path, ModelFormatError))
    logger.info(f"Loaded {som} from {path}")
    return som


def save_som(som: SOM, path: PathLike) -> None:
    lines = [f"{som.nin} {som.nout}"]
    lines += [" ".join(repr(float(v)) for v in row) for row in som.weights]
    Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")


def _parse_numbers(element: Optional[ET.Element], count: int, what: str) -> np.ndarray:
    if element is None or not (element.text or "").strip():
        raise ModelFormatError(f"missing {what}")
    try:
        values = [float(tok) for tok in element.text.split()]
    except ValueError as e:
        raise ModelFormatError(f"invalid {what}: {e}") from e
    if len(values) < count:
        raise ModelFormatError(f"{what}: expected {count} values, got {len(values)}")
    return np.array(values[:count])


def parse_perceptron(document: str) -> Perceptron:
    """
    Parse a perceptron from its XML document.

    Expected layout::

        <network nlayers="2">
          <layer nin="6" nout="10">
            <weights> row-major nin x nout </weights>
            <biases> nout values </biases>
          </layer>
          ...
        </network>
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise ModelFormatError(f"invalid perceptron document: {e}") from e

    layer_nodes = root.findall(".//layer")
    if not layer_nodes:
        raise ModelFormatError("perceptron document has no layers")

    declared = root.get("nlayers")
    if declared is not None and declared.strip() != str(len(layer_nodes)):
        logger.warning(f"nlayers={declared} but {len(layer_nodes)} layers found")

    layers = []
    for i, node in enumerate(layer_nodes):
        try:
            nin, nout = int(node.get("nin")), int(node.get("nout"))
        except (TypeError, ValueError) as e:
            raise ModelFormatError(f"layer {i}: invalid nin/nout") from e

        weight_nodes = node.findall("weights")
        bias_nodes = node.findall("biases")
        if len(weight_nodes) > 1:
            logger.warning(f"layer {i}: more than one weight matrix, using the first")
        if len(bias_nodes) > 1:
            logger.warning(f"layer {i}: more than one bias vector, using the first")

        weights = _parse_numbers(node.find("weights"), nin * nout, f"layer {i} weights")
        biases = _parse_numbers(node.find("biases"), nout, f"layer {i} biases")
        layers.append(Layer(weights.reshape(nin, nout), biases))

    try:
        return Perceptron(layers)
    except ValueError as e:
        raise ModelFormatError(str(e)) from e


def load_perceptron(path: PathLike) -> Perceptron:
    net = parse_perceptron(_read_text(path, ModelFormatError))
    logger.info(f"Loaded {net} from {path}")
    return net


def perceptron_to_xml(net: Perceptron) -> str:
    root = ET.Element("network", nlayers=str(len(net.layers)))
    for layer in net.layers:
        node = ET.SubElement(root, "layer", nin=str(layer.nin), nout=str(layer.nout))
        weights = ET.SubElement(node, "weights")
        weights.text = " ".join(repr(float(v)) for v in layer.weights.ravel())
        biases = ET.SubElement(node, "biases")
        biases.text = " ".join(repr(float(v)) for v in layer.biases)
    return minidom.parseString(ET.tostring(root)).toprettyxml(indent="  ")


def save_perceptron(net: Perceptron, path: PathLike) -> None:
    Path(path).write_text(perceptron_to_xml(net), encoding="utf-8")
