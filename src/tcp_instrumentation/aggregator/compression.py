from abc import ABC, abstractmethod

import lz4.frame
import zstandard as zstd


class CompressionStrategy(ABC):
    @abstractmethod
    def compress(self, data: bytes) -> bytes: ...

    @abstractmethod
    def decompress(self, data: bytes) -> bytes: ...


class LZ4Strategy(CompressionStrategy):
    def __init__(self, compression_level: int = 1):
        self.compression_level = compression_level

    def compress(self, data: bytes) -> bytes:
        return lz4.frame.compress(data, compression_level=self.compression_level)

    def decompress(self, data: bytes) -> bytes:
        return lz4.frame.decompress(data)


class ZstdStrategy(CompressionStrategy):
    def __init__(self, compression_level: int = 3):
        self.cctx = zstd.ZstdCompressor(level=compression_level)
        self.dctx = zstd.ZstdDecompressor()

    def compress(self, data: bytes) -> bytes:
        return self.cctx.compress(data)

    def decompress(self, data: bytes) -> bytes:
        return self.dctx.decompress(data)


class NoneStrategy(CompressionStrategy):
    """No-op compression strategy for plain JSONL output."""

    def compress(self, data: bytes) -> bytes:
        return data

    def decompress(self, data: bytes) -> bytes:
        return data


STRATEGIES = {
    "lz4": LZ4Strategy,
    "zstd": ZstdStrategy,
    "none": NoneStrategy,
}


def get_strategy(name: str) -> CompressionStrategy:
    if name not in STRATEGIES:
        raise ValueError(f"Unsupported compression strategy: {name}. Options: {list(STRATEGIES)}")
    return STRATEGIES[name]()
