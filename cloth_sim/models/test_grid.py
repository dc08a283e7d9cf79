"""
Tests for the cloth grid builder and the link graph invariants.

Covers:
1. Lattice layout and particle indexing
2. Pin policies
3. Structural / shear / bend link families
4. Graph simplicity (no duplicates, no self-links)
5. Construction-time validation
"""

import numpy as np
import pytest

from cloth_sim.models import ClothGridModel
from cloth_sim.sim import Model


DEVICE = "cpu"


def _assert_simple_graph(pairs, particle_count):
    assert np.all(pairs[:, 0] != pairs[:, 1]), "self-link found"
    assert np.all(pairs[:, 0] < pairs[:, 1]), "pairs must be stored with a < b"
    assert len(np.unique(pairs, axis=0)) == len(pairs), "duplicate link found"
    assert pairs.min() >= 0 and pairs.max() < particle_count


def test_grid_layout():
    """Particle (r, c) sits at origin + (c * s, -r * s)."""
    model = ClothGridModel(rows=3, cols=4, spacing=0.5, origin=(1.0, 2.0), device=DEVICE)

    assert model.particle_count == 12
    q = model.particle_q.numpy()
    assert np.allclose(q[model.index(0, 0)], (1.0, 2.0))
    assert np.allclose(q[model.index(2, 3)], (2.5, 1.0))
    assert np.allclose(q[model.index(1, 2)], (2.0, 1.5))


def test_structural_links():
    model = ClothGridModel(rows=3, cols=3, spacing=1.0, device=DEVICE)
    pairs = model.link_pairs()

    # 3 rows * 2 horizontal + 2 * 3 vertical
    assert model.link_count == 12
    assert len(pairs) == 12
    links = {tuple(p) for p in pairs}
    assert (model.index(1, 1), model.index(1, 2)) in links
    assert (model.index(0, 2), model.index(1, 2)) in links
    assert np.allclose(model.link_rest_lengths(), 1.0)
    _assert_simple_graph(pairs, model.particle_count)


@pytest.mark.parametrize("rows,cols", [(1, 1), (1, 5), (4, 1), (4, 6)])
@pytest.mark.parametrize("with_shear,with_bend", [(False, False), (True, False), (False, True), (True, True)])
def test_link_families_are_simple(rows, cols, with_shear, with_bend):
    model = ClothGridModel(rows=rows, cols=cols, spacing=0.2, device=DEVICE,
                           with_shear=with_shear, with_bend=with_bend)

    expected = rows * (cols - 1) + (rows - 1) * cols
    if with_shear:
        expected += 2 * (rows - 1) * (cols - 1)
    if with_bend:
        expected += rows * max(cols - 2, 0) + max(rows - 2, 0) * cols

    assert model.link_count == expected
    if expected > 0:
        _assert_simple_graph(model.link_pairs(), model.particle_count)


def test_shear_and_bend_rest_lengths():
    model = ClothGridModel(rows=3, cols=3, spacing=1.0, with_shear=True, with_bend=True, device=DEVICE)
    rest = dict(zip(map(tuple, model.link_pairs()), model.link_rest_lengths()))

    assert np.isclose(rest[(model.index(0, 0), model.index(1, 1))], np.sqrt(2.0))
    assert np.isclose(rest[(model.index(0, 1), model.index(1, 0))], np.sqrt(2.0))
    assert np.isclose(rest[(model.index(0, 0), model.index(0, 2))], 2.0)
    assert np.isclose(rest[(model.index(0, 0), model.index(2, 0))], 2.0)


def test_pin_policies():
    top = ClothGridModel(rows=3, cols=4, device=DEVICE, pin_policy="top_row")
    assert np.array_equal(np.flatnonzero(top.pinned_mask()), [0, 1, 2, 3])

    corners = ClothGridModel(rows=3, cols=4, device=DEVICE, pin_policy="corners")
    assert np.array_equal(np.flatnonzero(corners.pinned_mask()), [0, 3])

    none = ClothGridModel(rows=3, cols=4, device=DEVICE, pin_policy="none")
    assert not none.pinned_mask().any()

    explicit = ClothGridModel(rows=3, cols=4, device=DEVICE, pin_policy=[5, 11, 5])
    assert np.array_equal(np.flatnonzero(explicit.pinned_mask()), [5, 11])


def test_invalid_grid_rejected():
    with pytest.raises(ValueError):
        ClothGridModel(rows=0, cols=3, device=DEVICE)
    with pytest.raises(ValueError):
        ClothGridModel(rows=3, cols=3, spacing=0.0, device=DEVICE)
    with pytest.raises(ValueError):
        ClothGridModel(rows=3, cols=3, pin_policy="left_edge", device=DEVICE)
    with pytest.raises(ValueError):
        ClothGridModel(rows=3, cols=3, pin_policy=[9], device=DEVICE)


def test_set_links_validation():
    """Bad topology is a construction-time error."""
    model = Model(device=DEVICE)
    model.set_particles([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])

    with pytest.raises(ValueError):
        model.set_links([[0, 3]], [1.0])        # out of range
    with pytest.raises(ValueError):
        model.set_links([[-1, 0]], [1.0])       # out of range
    with pytest.raises(ValueError):
        model.set_links([[1, 1]], [1.0])        # self-link
    with pytest.raises(ValueError):
        model.set_links([[0, 1], [1, 0]], [1.0, 1.0])  # same unordered pair
    with pytest.raises(ValueError):
        model.set_links([[0, 1]], [0.0])        # non-positive rest
    with pytest.raises(ValueError):
        model.set_links([[0, 1]], [1.0, 1.0])   # length mismatch

    model.set_links([[1, 0], [2, 1]], [1.0, 1.0])
    assert np.array_equal(model.link_pairs(), [[0, 1], [1, 2]])


def test_remove_links_compacts():
    model = ClothGridModel(rows=2, cols=3, spacing=1.0, device=DEVICE)
    before = model.link_pairs()
    version = model.topology_version

    keep = np.ones(model.link_count, dtype=bool)
    keep[1] = False
    assert model.remove_links(keep) == 1

    after = model.link_pairs()
    assert model.link_count == len(before) - 1
    assert np.array_equal(after, np.delete(before, 1, axis=0))
    assert model.link_indices.shape[0] == 2 * model.link_count
    assert model.link_rest_length.shape[0] == model.link_count
    assert model.topology_version == version + 1

    # Nothing to remove leaves the version alone
    assert model.remove_links(np.ones(model.link_count, dtype=bool)) == 0
    assert model.topology_version == version + 1


def test_link_pairs_read_only():
    model = ClothGridModel(rows=2, cols=2, device=DEVICE)
    pairs = model.link_pairs()
    with pytest.raises(ValueError):
        pairs[0, 0] = 3


def test_state_starts_at_rest():
    model = ClothGridModel(rows=2, cols=2, device=DEVICE)
    state = model.state()
    assert np.array_equal(state.particle_q.numpy(), model.particle_q.numpy())
    assert np.array_equal(state.particle_q_prev.numpy(), model.particle_q.numpy())


def main():
    print("=" * 60)
    print("Running cloth grid tests")
    print("=" * 60)

    tests = [
        test_grid_layout,
        test_structural_links,
        test_shear_and_bend_rest_lengths,
        test_pin_policies,
        test_invalid_grid_rejected,
        test_set_links_validation,
        test_remove_links_compacts,
        test_link_pairs_read_only,
        test_state_starts_at_rest,
    ]
    for test in tests:
        test()
        print(f"✓ {test.__name__}")

    print("=" * 60)
    print(f"✓ All {len(tests)} tests passed!")


if __name__ == "__main__":
    main()
