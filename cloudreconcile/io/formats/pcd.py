"""Mini README: PCD (Point Cloud Data) v0.7 reader and writer.

Structure:
    * PcdFormat - ``ascii`` and ``binary`` encodings of the PCD container.

Every field declared in the header becomes a field of the cloud's structured
array; fields with ``COUNT > 1`` (histograms, normals stored as vectors) are
kept as sub-array fields. ``binary_compressed`` files are rejected.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np

from ...logging_utils import get_logger
from ...point_cloud import DEFAULT_VIEWPOINT, PointCloud, has_nan
from ..base import PointCloudFormat, PointCloudFormatError, parse_ascii_column
from ..registry import REGISTRY

LOGGER = get_logger(__name__)

_TYPE_CODES = {"F": "f", "I": "i", "U": "u"}
_KIND_CODES = {"f": "F", "i": "I", "u": "U"}
_REQUIRED_KEYS = ("FIELDS", "SIZE", "TYPE", "WIDTH", "HEIGHT", "POINTS", "DATA")


def _parse_header(stream, source: Path) -> Dict[str, List[str]]:
    header: Dict[str, List[str]] = {}
    while True:
        raw = stream.readline()
        if not raw:
            raise PointCloudFormatError(f"{source}: header ended before the DATA line")
        line = raw.decode("ascii", errors="replace").strip()
        if not line or line.startswith("#"):
            continue
        key, *values = line.split()
        header[key.upper()] = values
        if key.upper() == "DATA":
            break
    missing = [key for key in _REQUIRED_KEYS if key not in header]
    if missing:
        raise PointCloudFormatError(f"{source}: header is missing {', '.join(missing)}")
    return header


def _field_dtype(header: Dict[str, List[str]], source: Path) -> np.dtype:
    names = header["FIELDS"]
    sizes = header["SIZE"]
    types = header["TYPE"]
    counts = header.get("COUNT", ["1"] * len(names))
    if not len(names) == len(sizes) == len(types) == len(counts):
        raise PointCloudFormatError(f"{source}: FIELDS, SIZE, TYPE and COUNT lengths differ")

    fields: List[Tuple] = []
    for position, (name, size, kind, count) in enumerate(zip(names, sizes, types, counts)):
        if kind.upper() not in _TYPE_CODES:
            raise PointCloudFormatError(f"{source}: unknown field type '{kind}'")
        base = np.dtype(f"<{_TYPE_CODES[kind.upper()]}{int(size)}")
        if name == "_":
            name = f"_padding{position}"
        if int(count) == 1:
            fields.append((name, base))
        else:
            fields.append((name, base, (int(count),)))
    try:
        return np.dtype(fields)
    except (TypeError, ValueError) as error:
        raise PointCloudFormatError(f"{source}: invalid field layout: {error}") from error


def _read_ascii(payload: bytes, dtype: np.dtype, count: int, source: Path) -> np.ndarray:
    data = np.zeros(count, dtype=dtype)
    if count == 0:
        return data
    columns = sum(int(np.prod(dtype[name].shape or (1,))) for name in dtype.names)
    try:
        text = io.StringIO(payload.decode("ascii", errors="replace"))
        table = np.loadtxt(text, dtype=str, ndmin=2, max_rows=count)
    except ValueError as error:
        raise PointCloudFormatError(f"{source}: malformed ascii data: {error}") from error
    if table.shape != (count, columns):
        raise PointCloudFormatError(
            f"{source}: expected {count} rows of {columns} values, found {table.shape[0]}x{table.shape[1]}"
        )
    offset = 0
    for name in dtype.names:
        width = int(np.prod(dtype[name].shape or (1,)))
        block = table[:, offset : offset + width]
        try:
            data[name] = parse_ascii_column(block, dtype[name].base).reshape(data[name].shape)
        except ValueError as error:
            raise PointCloudFormatError(f"{source}: malformed values in field '{name}'") from error
        offset += width
    return data


def _read_binary(payload: bytes, dtype: np.dtype, count: int, source: Path) -> np.ndarray:
    if count == 0:
        return np.zeros(0, dtype=dtype)
    expected = dtype.itemsize * count
    if len(payload) < expected:
        raise PointCloudFormatError(f"{source}: binary data truncated ({len(payload)} of {expected} bytes)")
    return np.frombuffer(payload, dtype=dtype, count=count).copy()


def _ascii_columns(data: np.ndarray) -> List[np.ndarray]:
    columns: List[np.ndarray] = []
    for name in data.dtype.names:
        values = data[name].reshape(len(data), -1)
        kind = data.dtype[name].base.kind
        if kind == "f":
            pattern = "%.9g" if data.dtype[name].base.itemsize <= 4 else "%.17g"
        else:
            pattern = "%d"
        for column in range(values.shape[1]):
            columns.append(np.char.mod(pattern, values[:, column]))
    return columns


class PcdFormat(PointCloudFormat):
    """Point Cloud Data files as written by PCL-based tools."""

    extension = "pcd"
    supports_binary = True

    def read(self, stream, *, source: Path) -> PointCloud:
        header = _parse_header(stream, source)
        dtype = _field_dtype(header, source)
        try:
            width = int(header["WIDTH"][0])
            height = int(header["HEIGHT"][0])
            count = int(header["POINTS"][0])
            viewpoint = tuple(float(value) for value in header.get("VIEWPOINT", DEFAULT_VIEWPOINT))
        except (IndexError, ValueError) as error:
            raise PointCloudFormatError(f"{source}: invalid WIDTH/HEIGHT/POINTS/VIEWPOINT") from error
        if width * height != count:
            raise PointCloudFormatError(f"{source}: WIDTH x HEIGHT ({width}x{height}) != POINTS ({count})")

        encoding = header["DATA"][0].lower() if header["DATA"] else ""
        payload = stream.read()
        if encoding == "ascii":
            data = _read_ascii(payload, dtype, count, source)
        elif encoding == "binary":
            data = _read_binary(payload, dtype, count, source)
        elif encoding == "binary_compressed":
            raise PointCloudFormatError(f"{source}: binary_compressed PCD data is not supported")
        else:
            raise PointCloudFormatError(f"{source}: unknown DATA encoding '{encoding}'")

        LOGGER.debug("Read %s points (%s) from %s", count, ", ".join(dtype.names), source)
        try:
            cloud = PointCloud(
                data=data,
                width=width,
                height=height,
                is_dense=not has_nan(data),
                viewpoint=viewpoint,
            )
        except ValueError as error:
            raise PointCloudFormatError(f"{source}: {error}") from error
        return cloud

    def write(self, stream, cloud: PointCloud, *, binary: bool) -> None:
        names, sizes, types, counts = [], [], [], []
        fields = []
        for name in cloud.data.dtype.names:
            field = cloud.data.dtype[name]
            kind = field.base.kind
            if kind not in _KIND_CODES:
                raise ValueError(f"Field '{name}' of kind '{kind}' cannot be stored in PCD")
            names.append(name)
            sizes.append(str(field.base.itemsize))
            types.append(_KIND_CODES[kind])
            counts.append(str(int(np.prod(field.shape or (1,)))))
            little = field.base.newbyteorder("<")
            fields.append((name, little, field.shape) if field.shape else (name, little))

        header = [
            "# .PCD v0.7 - Point Cloud Data file format",
            "VERSION 0.7",
            "FIELDS " + " ".join(names),
            "SIZE " + " ".join(sizes),
            "TYPE " + " ".join(types),
            "COUNT " + " ".join(counts),
            f"WIDTH {cloud.width}",
            f"HEIGHT {cloud.height}",
            "VIEWPOINT " + " ".join(f"{value:.17g}" for value in cloud.viewpoint),
            f"POINTS {len(cloud)}",
            f"DATA {'binary' if binary else 'ascii'}",
        ]
        stream.write(("\n".join(header) + "\n").encode("ascii"))
        if binary:
            stream.write(cloud.data.astype(np.dtype(fields)).tobytes())
            return
        if len(cloud) == 0:
            return
        rows = (" ".join(values) for values in zip(*_ascii_columns(cloud.data)))
        stream.write(("\n".join(rows) + "\n").encode("ascii"))


REGISTRY.register(PcdFormat)
