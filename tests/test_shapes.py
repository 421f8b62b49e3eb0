import pytest
import torch

from mvnorm.errors import ShapeMismatchError
from mvnorm.shapes import RowGrouping, check_pairs, overlaps, total


def test_total():
    assert total([2, 3, 4, 4]) == 96
    assert total([2, 3, 4, 4], 0, 2) == 6
    assert total([2, 3], 2) == 1


def test_per_channel_grouping_nchw():
    grouping = RowGrouping.from_shape((2, 3, 4, 5), split_dim=2)
    assert (grouping.rows, grouping.cols) == (6, 20)


def test_across_channels_grouping_nchw():
    grouping = RowGrouping.from_shape((2, 3, 4, 5), split_dim=1)
    assert (grouping.rows, grouping.cols) == (2, 60)


def test_two_dim_tensor_gives_single_column_rows():
    grouping = RowGrouping.from_shape((4, 7), split_dim=2)
    assert (grouping.rows, grouping.cols) == (28, 1)


def test_too_few_dims_rejected():
    with pytest.raises(ShapeMismatchError):
        RowGrouping.from_shape((5,), split_dim=2)


def test_contiguous_matrix_is_a_view():
    x = torch.arange(24, dtype=torch.float32).reshape(2, 3, 4)
    grouping = RowGrouping.from_shape(x.shape, split_dim=1)
    mat = grouping.as_matrix(x)

    assert mat.shape == (2, 12)
    assert mat.data_ptr() == x.data_ptr()
    mat[1, 0] = -1.0
    assert x[1, 0, 0] == -1.0


def test_non_contiguous_matrix_preserves_row_order():
    x = torch.arange(24, dtype=torch.float32).reshape(4, 3, 2).permute(2, 1, 0)
    grouping = RowGrouping.from_shape(x.shape, split_dim=2)
    mat = grouping.as_matrix(x)
    assert torch.equal(mat, x.contiguous().view(6, 4))


def test_non_contiguous_output_written_back():
    out = torch.zeros(4, 3, 2).permute(2, 1, 0)
    grouping = RowGrouping.from_shape(out.shape, split_dim=2)
    mat = grouping.output_matrix(out)
    mat.fill_(7.0)
    grouping.write_back(out, mat)
    assert torch.all(out == 7.0)


def test_check_pairs_rejects_shape_mismatch():
    with pytest.raises(ShapeMismatchError, match="shape mismatch"):
        check_pairs([torch.zeros(2, 3, 4)], [torch.zeros(2, 3, 5)], split_dim=2)


def test_check_pairs_rejects_count_mismatch():
    with pytest.raises(ShapeMismatchError):
        check_pairs([torch.zeros(2, 3), torch.zeros(2, 3)], [torch.zeros(2, 3)], split_dim=2)


def test_check_pairs_rejects_integer_tensors():
    with pytest.raises(TypeError):
        check_pairs([torch.zeros(2, 3, dtype=torch.int32)], [torch.zeros(2, 3)], split_dim=2)


def test_check_pairs_returns_one_grouping_per_pair():
    groupings = check_pairs(
        [torch.zeros(2, 3, 4), torch.zeros(1, 2, 8)],
        [torch.zeros(2, 3, 4), torch.zeros(1, 2, 8)],
        split_dim=1,
    )
    assert [(g.rows, g.cols) for g in groupings] == [(2, 12), (1, 16)]


def test_overlaps_same_tensor_and_views():
    x = torch.zeros(2, 3, 4)
    assert overlaps(x, x)
    assert overlaps(x, x.permute(2, 1, 0))
    assert overlaps(x[0], x[1])


def test_overlaps_disjoint_and_empty():
    x = torch.zeros(2, 3, 4)
    assert not overlaps(x, torch.zeros(2, 3, 4))
    assert not overlaps(x, x.clone())
    assert not overlaps(torch.empty(0, 3), torch.empty(0, 3))
