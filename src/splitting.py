"""
splitting.py - Reproducible train / validation / test partitioning.

Each class is split independently (stratified by construction) so the
tumor / non-tumor balance of the full dataset is preserved in every split:

    train = floor(train_ratio * n)             sampled without replacement
    val   = floor(val_share * (n - train))     val_share = val / (val + test)
    test  = everything left over

With the default 70/15/15 ratios this reproduces the original two-stage
sampling: 70% to train, then half of the remainder to validation.

Randomness comes exclusively from an explicitly passed
``numpy.random.Generator`` so results never depend on call order or on a
process-wide seed.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

SPLIT_NAMES: tuple[str, ...] = ("train", "val", "test")


@dataclass
class DatasetSplit:
    """Disjoint partition of one class's files."""
    train: list[str] = field(default_factory=list)
    val: list[str] = field(default_factory=list)
    test: list[str] = field(default_factory=list)

    def get(self, name: str) -> list[str]:
        if name not in SPLIT_NAMES:
            raise ValueError(f"Unknown split '{name}'. Choose from: {list(SPLIT_NAMES)}")
        return getattr(self, name)

    def sizes(self) -> dict[str, int]:
        return {name: len(self.get(name)) for name in SPLIT_NAMES}

    def all_files(self) -> list[str]:
        return self.train + self.val + self.test


def _floor(x: float) -> int:
    # Guard against 0.7 * 10 == 6.999999... style float error
    return int(math.floor(x + 1e-9))


def split_files(
    files: Sequence[str],
    rng: np.random.Generator,
    train_ratio: float = 0.7,
    val_ratio: float = 0.15,
    test_ratio: float = 0.15,
) -> DatasetSplit:
    """
    Randomly partition *files* into train / validation / test.

    Parameters
    ----------
    files : sequence of str
        File identifiers of a single class.
    rng : np.random.Generator
        Seeded generator; the only source of randomness.
    train_ratio, val_ratio, test_ratio : float
        Target fractions.  Counts are rounded down; rounding leftovers go
        to the test split.

    Returns
    -------
    DatasetSplit
    """
    files = list(files)
    n = len(files)

    n_train = _floor(train_ratio * n)
    train_idx = rng.choice(n, size=n_train, replace=False)
    taken = set(train_idx.tolist())
    rest = [i for i in range(n) if i not in taken]

    holdout = val_ratio + test_ratio
    val_share = val_ratio / holdout if holdout > 0 else 0.0
    n_val = _floor(val_share * len(rest))
    val_pos = rng.choice(len(rest), size=n_val, replace=False)
    val_taken = set(val_pos.tolist())

    return DatasetSplit(
        train=[files[i] for i in train_idx],
        val=[files[rest[j]] for j in val_pos],
        test=[files[i] for j, i in enumerate(rest) if j not in val_taken],
    )


def split_classes(
    files_by_label: dict[int, Sequence[str]],
    seed: int = 2,
    train_ratio: float = 0.7,
    val_ratio: float = 0.15,
    test_ratio: float = 0.15,
    rng: Optional[np.random.Generator] = None,
) -> dict[int, DatasetSplit]:
    """
    Split each class independently with a single seeded generator.

    Classes are processed in ascending label order so the same seed always
    yields the same partition regardless of dict insertion order.

    Raises
    ------
    ValueError
        If any class has no files.
    """
    rng = rng if rng is not None else np.random.default_rng(seed)

    splits: dict[int, DatasetSplit] = {}
    for label in sorted(files_by_label):
        files = files_by_label[label]
        if not files:
            raise ValueError(f"Cannot split class {label}: no files.")
        splits[label] = split_files(
            files, rng,
            train_ratio=train_ratio, val_ratio=val_ratio, test_ratio=test_ratio,
        )
        logger.info("Class %d split sizes: %s", label, splits[label].sizes())
    return splits
