"""Mini README: PLY polygon file reader and writer restricted to vertices.

Structure:
    * PlyFormat - reads the ``vertex`` element of ascii or binary PLY files and
      writes clouds as ascii or little-endian binary PLY.

Only scalar vertex properties are supported; list properties such as face
indices are rejected because a point cloud has no topology to keep. Sub-array
fields are flattened into ``<name>_<i>`` properties on write.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import List, Tuple

import numpy as np

from ...logging_utils import get_logger
from ...point_cloud import PointCloud, has_nan
from ..base import PointCloudFormat, PointCloudFormatError, parse_ascii_column
from ..registry import REGISTRY

LOGGER = get_logger(__name__)

_PROPERTY_TYPES = {
    "char": "i1",
    "int8": "i1",
    "uchar": "u1",
    "uint8": "u1",
    "short": "i2",
    "int16": "i2",
    "ushort": "u2",
    "uint16": "u2",
    "int": "i4",
    "int32": "i4",
    "uint": "u4",
    "uint32": "u4",
    "float": "f4",
    "float32": "f4",
    "double": "f8",
    "float64": "f8",
}
_WRITE_TYPES = {
    "i1": "char",
    "u1": "uchar",
    "i2": "short",
    "u2": "ushort",
    "i4": "int",
    "u4": "uint",
    "f4": "float",
    "f8": "double",
}
_ENCODINGS = {"ascii": "", "binary_little_endian": "<", "binary_big_endian": ">"}


def _parse_header(stream, source: Path) -> Tuple[str, int, List[Tuple[str, str]]]:
    if stream.readline().strip() != b"ply":
        raise PointCloudFormatError(f"{source}: missing 'ply' magic line")

    encoding = None
    vertex_count = None
    properties: List[Tuple[str, str]] = []
    current_element = None
    while True:
        raw = stream.readline()
        if not raw:
            raise PointCloudFormatError(f"{source}: header ended before end_header")
        tokens = raw.decode("ascii", errors="replace").split()
        if not tokens or tokens[0] in ("comment", "obj_info"):
            continue
        keyword = tokens[0]
        if keyword == "end_header":
            break
        if keyword == "format":
            encoding = tokens[1] if len(tokens) > 1 else ""
        elif keyword == "element":
            current_element = tokens[1]
            if current_element == "vertex":
                vertex_count = int(tokens[2])
            elif vertex_count is None and int(tokens[2]) > 0:
                raise PointCloudFormatError(f"{source}: element '{current_element}' precedes the vertices")
        elif keyword == "property" and current_element == "vertex":
            if tokens[1] == "list":
                raise PointCloudFormatError(f"{source}: list vertex properties are not supported")
            if tokens[1] not in _PROPERTY_TYPES:
                raise PointCloudFormatError(f"{source}: unknown property type '{tokens[1]}'")
            properties.append((tokens[2], _PROPERTY_TYPES[tokens[1]]))

    if encoding not in _ENCODINGS:
        raise PointCloudFormatError(f"{source}: unsupported PLY format '{encoding}'")
    if vertex_count is None:
        raise PointCloudFormatError(f"{source}: no vertex element")
    return encoding, vertex_count, properties


class PlyFormat(PointCloudFormat):
    """Vertex-only PLY clouds."""

    extension = "ply"
    supports_binary = True

    def read(self, stream, *, source: Path) -> PointCloud:
        try:
            encoding, count, properties = _parse_header(stream, source)
        except (IndexError, ValueError) as error:
            if isinstance(error, PointCloudFormatError):
                raise
            raise PointCloudFormatError(f"{source}: malformed PLY header") from error

        order = _ENCODINGS[encoding] or "<"
        try:
            dtype = np.dtype([(name, order + code) for name, code in properties])
        except (TypeError, ValueError) as error:
            raise PointCloudFormatError(f"{source}: invalid vertex layout: {error}") from error

        payload = stream.read()
        if encoding == "ascii":
            data = np.zeros(count, dtype=dtype)
            if count:
                try:
                    text = io.StringIO(payload.decode("ascii", errors="replace"))
                    table = np.loadtxt(text, dtype=str, ndmin=2, max_rows=count)
                except ValueError as error:
                    raise PointCloudFormatError(f"{source}: malformed ascii vertices: {error}") from error
                if table.shape != (count, len(properties)):
                    raise PointCloudFormatError(f"{source}: vertex rows do not match the header")
                for column, (name, _) in enumerate(properties):
                    try:
                        data[name] = parse_ascii_column(table[:, column], dtype[name])
                    except ValueError as error:
                        raise PointCloudFormatError(f"{source}: malformed values in '{name}'") from error
        elif count == 0:
            data = np.zeros(0, dtype=dtype.newbyteorder("="))
        else:
            expected = dtype.itemsize * count
            if len(payload) < expected:
                raise PointCloudFormatError(f"{source}: binary vertices truncated")
            data = np.frombuffer(payload, dtype=dtype, count=count).astype(dtype.newbyteorder("="))

        LOGGER.debug("Read %s vertices from %s", count, source)
        try:
            return PointCloud(data=data, width=count, height=1, is_dense=not has_nan(data))
        except ValueError as error:
            raise PointCloudFormatError(f"{source}: {error}") from error

    def write(self, stream, cloud: PointCloud, *, binary: bool) -> None:
        columns: List[Tuple[str, np.ndarray]] = []
        for name in cloud.data.dtype.names:
            values = cloud.data[name]
            if values.ndim == 1:
                columns.append((name, values))
            else:
                flat = values.reshape(len(values), -1)
                columns.extend((f"{name}_{index}", flat[:, index]) for index in range(flat.shape[1]))

        header = [
            "ply",
            "format binary_little_endian 1.0" if binary else "format ascii 1.0",
            f"element vertex {len(cloud)}",
        ]
        layout = []
        for name, values in columns:
            code = values.dtype.str[1:]
            if code not in _WRITE_TYPES:
                raise ValueError(f"Field '{name}' of type {values.dtype} cannot be stored in PLY")
            header.append(f"property {_WRITE_TYPES[code]} {name}")
            layout.append((name, "<" + code))
        header.append("end_header")
        stream.write(("\n".join(header) + "\n").encode("ascii"))

        if binary:
            packed = np.empty(len(cloud), dtype=np.dtype(layout))
            for name, values in columns:
                packed[name] = values
            stream.write(packed.tobytes())
            return
        for index in range(len(cloud)):
            fields = []
            for _, values in columns:
                value = values[index]
                fields.append(repr(float(value)) if values.dtype.kind == "f" else str(int(value)))
            stream.write((" ".join(fields) + "\n").encode("ascii"))


REGISTRY.register(PlyFormat)
