import numpy as np
import pytest

from pixreduce.errors import AllocationFailure
from pixreduce.pipeline import buffer as buffer_module
from pixreduce.pipeline.buffer import Sample, SampleBuffer, allocate_intermediate


class TestSampleBuffer:
    def setup_method(self):
        self.pixels = np.arange(40, dtype=np.uint8).reshape(10, 4)

    def test_wraps_without_copy(self):
        buffer = SampleBuffer(self.pixels)
        assert len(buffer) == 10
        assert np.shares_memory(buffer.array, self.pixels)

    def test_view_is_read_only(self):
        buffer = SampleBuffer(self.pixels)
        with pytest.raises(ValueError):
            buffer.array[0, 0] = 1
        # The caller's array is untouched.
        assert self.pixels.flags.writeable

    def test_indexing_returns_int_samples(self):
        buffer = SampleBuffer(self.pixels)
        sample = buffer[2]
        assert sample == Sample(8, 9, 10, 11)
        assert type(sample.r) is int

    def test_from_image_shape(self):
        image = np.zeros((3, 5, 4), dtype=np.uint8)
        image[1, 2] = (7, 0, 0, 255)
        buffer = SampleBuffer.from_array(image)
        assert len(buffer) == 15
        assert buffer[7] == Sample(7, 0, 0, 255)

    def test_from_bytes(self):
        buffer = SampleBuffer.from_bytes(bytes([1, 2, 3, 4, 5, 6, 7, 8]))
        assert len(buffer) == 2
        assert buffer[1] == Sample(5, 6, 7, 8)

    def test_from_bytes_rejects_partial_pixel(self):
        with pytest.raises(ValueError):
            SampleBuffer.from_bytes(bytes(6))

    def test_from_samples(self):
        buffer = SampleBuffer.from_samples([(1, 2, 3, 4), (255, 0, 0, 0)])
        assert buffer[1].r == 255
        assert len(SampleBuffer.from_samples([])) == 0

    def test_rejects_bad_input(self):
        with pytest.raises(ValueError):
            SampleBuffer(np.zeros((4, 3), dtype=np.uint8))
        with pytest.raises(ValueError):
            SampleBuffer(np.zeros((4, 4), dtype=np.int32))
        with pytest.raises(ValueError):
            SampleBuffer.from_array(np.zeros((2, 2, 3), dtype=np.uint8))
        with pytest.raises(TypeError):
            SampleBuffer([[1, 2, 3, 4]])

    def test_channel_column(self):
        buffer = SampleBuffer(self.pixels)
        assert buffer.channel("g").tolist() == list(range(1, 40, 4))
        with pytest.raises(ValueError):
            buffer.channel("x")


class TestAllocateIntermediate:
    def test_allocates_int64(self):
        out = allocate_intermediate(5)
        assert out.shape == (5,)
        assert out.dtype == np.int64

    def test_memory_error_becomes_allocation_failure(self, monkeypatch):
        def _fail(count):
            raise MemoryError("out of memory")

        monkeypatch.setattr(buffer_module, "_allocate", _fail)
        with pytest.raises(AllocationFailure) as excinfo:
            allocate_intermediate(10)
        assert isinstance(excinfo.value.__cause__, MemoryError)

    def test_negative_count(self):
        with pytest.raises(ValueError):
            allocate_intermediate(-1)
