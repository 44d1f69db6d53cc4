"""
基因組序列化 (Genome Codec)

單一基因組的四種表示法：

- 二進位：1 位元組類型標籤、big-endian int32 基因數目、big-endian 基因值
- 文字：長度記號後接自我分隔的基因記號，可無損讀回
  (``i<int>|``、``d<bits>|<repr>|``、``f<bits>|<repr>|``、``g<len>|<payload>``)
- 可讀字串：以空白分隔的基因值
- JSON
"""

import json
import logging
import struct
from typing import TYPE_CHECKING, Any, Dict, List

import numpy as np

from .exceptions import GenomeFormatError
from .genome import Genome, object_array
from .models import ElementKind

if TYPE_CHECKING:
    from .species import VectorSpecies

logger = logging.getLogger(__name__)

_COUNT = struct.Struct(">i")

_BIG_ENDIAN_DTYPES = {
    ElementKind.DOUBLE: np.dtype(">f8"),
    ElementKind.FLOAT: np.dtype(">f4"),
    ElementKind.INTEGER: np.dtype(">i4"),
    ElementKind.SHORT: np.dtype(">i2"),
}


def _check_length(species: "VectorSpecies", count: int, position: int = 0) -> None:
    if count < 0:
        raise GenomeFormatError(f"Negative gene count {count}", position)
    if not species.is_dynamic and count != species.genome_size:
        raise GenomeFormatError(
            f"Expected {species.genome_size} genes for a fixed-length genome, found {count}", position)


# =============================================================================
# Binary
# =============================================================================

def write_genome(genome: Genome) -> bytes:
    """將基因組寫成二進位格式"""
    kind = genome.element_kind
    parts = [kind.tag, _COUNT.pack(len(genome))]
    if kind is ElementKind.GENE:
        for gene in genome.genes:
            payload = gene.to_bytes()
            parts.append(_COUNT.pack(len(payload)))
            parts.append(payload)
    else:
        parts.append(genome.genes.astype(_BIG_ENDIAN_DTYPES[kind]).tobytes())
    return b"".join(parts)


def read_genome(data: bytes, species: "VectorSpecies") -> Genome:
    """從二進位格式讀回基因組

    Raises:
        GenomeFormatError: 標籤不符、長度錯誤或資料被截斷
    """
    data = bytes(data)
    if len(data) < 1 + _COUNT.size:
        raise GenomeFormatError("Genome payload is too short", 0)
    kind = species.element_kind
    if data[:1] != kind.tag:
        raise GenomeFormatError(
            f"Element kind tag {data[:1]!r} does not match {kind.value} species (expected {kind.tag!r})", 0)
    (count,) = _COUNT.unpack_from(data, 1)
    _check_length(species, count, 1)
    position = 1 + _COUNT.size

    if kind is ElementKind.GENE:
        genes = []
        for _ in range(count):
            if position + _COUNT.size > len(data):
                raise GenomeFormatError("Truncated gene length", position)
            (size,) = _COUNT.unpack_from(data, position)
            position += _COUNT.size
            if size < 0 or position + size > len(data):
                raise GenomeFormatError(f"Truncated gene payload of {size} bytes", position)
            gene = species.gene_prototype.clone()
            gene.from_bytes(data[position:position + size])
            genes.append(gene)
            position += size
        if position != len(data):
            raise GenomeFormatError(f"{len(data) - position} trailing bytes", position)
        return Genome(species, object_array(genes))

    dtype = _BIG_ENDIAN_DTYPES[kind]
    expected = position + count * dtype.itemsize
    if len(data) != expected:
        raise GenomeFormatError(f"Expected {expected} bytes for {count} {kind.value} genes, got {len(data)}",
                                position)
    values = np.frombuffer(data, dtype=dtype, count=count, offset=position)
    return Genome(species, values.astype(kind.dtype))


# =============================================================================
# Text
# =============================================================================

def _encode_int(value: int) -> str:
    return f"i{value}|"


def _encode_double(value: float) -> str:
    (bits,) = struct.unpack(">q", struct.pack(">d", value))
    return f"d{bits}|{value!r}|"


def _encode_float(value: np.float32) -> str:
    (bits,) = struct.unpack(">i", struct.pack(">f", float(value)))
    return f"f{bits}|{value}|"


def format_genome(genome: Genome) -> str:
    """將基因組寫成可無損讀回的文字格式"""
    kind = genome.element_kind
    tokens = [_encode_int(len(genome))]
    for index in range(len(genome)):
        if kind is ElementKind.DOUBLE:
            tokens.append(_encode_double(genome.value(index)))
        elif kind is ElementKind.FLOAT:
            tokens.append(_encode_float(genome.genes[index]))
        elif kind.is_integer:
            tokens.append(_encode_int(genome.value(index)))
        else:
            payload = genome.genes[index].encode()
            tokens.append(f"g{len(payload)}|{payload}")
    return "".join(tokens)


class _TokenReader:
    """逐一讀取文字格式中的記號"""

    def __init__(self, text: str):
        self.text = text
        self.position = 0

    def _skip_whitespace(self) -> None:
        while self.position < len(self.text) and self.text[self.position].isspace():
            self.position += 1

    def at_end(self) -> bool:
        self._skip_whitespace()
        return self.position >= len(self.text)

    def _field(self) -> str:
        end = self.text.find("|", self.position)
        if end < 0:
            raise GenomeFormatError("Unterminated token", self.position)
        value = self.text[self.position:end]
        self.position = end + 1
        return value

    def _integer_field(self) -> int:
        start = self.position
        value = self._field()
        try:
            return int(value)
        except ValueError:
            raise GenomeFormatError(f"Invalid integer {value!r}", start)

    def read(self, expected: str) -> Any:
        self._skip_whitespace()
        if self.position >= len(self.text):
            raise GenomeFormatError(f"Expected '{expected}' token but the text ended", self.position)
        tag = self.text[self.position]
        if tag != expected:
            raise GenomeFormatError(f"Expected '{expected}' token, found {tag!r}", self.position)
        self.position += 1

        if tag == "i":
            return self._integer_field()
        if tag == "d":
            bits = self._integer_field()
            self._field()
            try:
                return struct.unpack(">d", struct.pack(">q", bits))[0]
            except struct.error:
                raise GenomeFormatError(f"Invalid double bits {bits}", self.position)
        if tag == "f":
            bits = self._integer_field()
            self._field()
            try:
                return struct.unpack(">f", struct.pack(">i", bits))[0]
            except struct.error:
                raise GenomeFormatError(f"Invalid float bits {bits}", self.position)
        size = self._integer_field()
        if size < 0 or self.position + size > len(self.text):
            raise GenomeFormatError(f"Truncated gene payload of {size} characters", self.position)
        payload = self.text[self.position:self.position + size]
        self.position += size
        return payload


_TEXT_TAGS = {
    ElementKind.DOUBLE: "d",
    ElementKind.FLOAT: "f",
    ElementKind.INTEGER: "i",
    ElementKind.SHORT: "i",
    ElementKind.GENE: "g",
}


def parse_genome(text: str, species: "VectorSpecies") -> Genome:
    """從文字格式讀回基因組

    Raises:
        GenomeFormatError: 記號格式錯誤、數目不符或數值超出元素類型範圍
    """
    reader = _TokenReader(text)
    count = reader.read("i")
    _check_length(species, count)
    kind = species.element_kind
    tag = _TEXT_TAGS[kind]

    values: List[Any] = []
    for _ in range(count):
        start = reader.position
        value = reader.read(tag)
        if kind is ElementKind.GENE:
            gene = species.gene_prototype.clone()
            gene.decode(value)
            value = gene
        elif kind.is_integer and not kind.in_native_range(value):
            raise GenomeFormatError(f"Value {value} is outside the range of {kind.value} genes", start)
        values.append(value)
    if not reader.at_end():
        raise GenomeFormatError("Unexpected trailing text", reader.position)

    if kind is ElementKind.GENE:
        return Genome(species, object_array(values))
    return Genome(species, np.array(values, dtype=kind.dtype))


# =============================================================================
# Human-readable / JSON
# =============================================================================

def genome_to_human(genome: Genome) -> str:
    """以空白分隔的可讀字串"""
    return genome.to_human_string()


def genome_to_dict(genome: Genome) -> Dict[str, Any]:
    if genome.element_kind is ElementKind.GENE:
        genes = [gene.encode() for gene in genome.genes]
    else:
        genes = genome.to_list()
    return {"element_kind": genome.element_kind.value, "genes": genes}


def genome_to_json(genome: Genome) -> str:
    """序列化為 JSON 字串"""
    return json.dumps(genome_to_dict(genome), ensure_ascii=False, indent=2)


def genome_from_json(json_str: str, species: "VectorSpecies") -> Genome:
    """從 JSON 字串反序列化

    Raises:
        GenomeFormatError: JSON 格式不正確或元素類型不符
    """
    try:
        data = json.loads(json_str)
        kind_name = data["element_kind"]
        genes = data["genes"]
    except (ValueError, KeyError, TypeError) as exc:
        raise GenomeFormatError(f"Invalid genome JSON: {exc}")
    kind = species.element_kind
    if kind_name != kind.value:
        raise GenomeFormatError(f"JSON genome is of kind '{kind_name}', species expects '{kind.value}'")
    if not isinstance(genes, list):
        raise GenomeFormatError("'genes' must be a list")
    _check_length(species, len(genes))

    if kind is ElementKind.GENE:
        decoded = []
        for payload in genes:
            gene = species.gene_prototype.clone()
            gene.decode(payload)
            decoded.append(gene)
        return Genome(species, object_array(decoded))
    if kind.is_integer and not all(isinstance(value, int) and kind.in_native_range(value) for value in genes):
        raise GenomeFormatError(f"JSON genes are not all {kind.value} values")
    return Genome(species, np.array(genes, dtype=kind.dtype))

