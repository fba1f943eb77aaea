"""Example pixreduce config.

Use with ``pixreduce run --config example_config.py:RED_SUM``.
"""

from pixreduce.config.schema import ReductionConfig


RED_SUM = ReductionConfig(
    extractor="red",
    combiner="sum",
    batch_size=256,
    reduce_mode="sequential",
)

LUMA_PEAK = ReductionConfig(
    extractor="luma",
    combiner="max",
    batch_size=4096,
    reduce_mode="tree",
    tree_chunk_size=1 << 20,
)
