"""Tests for flux boundary condition application."""

import numpy as np
import pytest

from freesurface.boundary_conditions import (
    FieldBoundaryConditions,
    FluxBoundaryCondition,
    FluxBoundaryConditionApplicator,
    GradientBoundaryCondition,
    NormalFlowBoundaryCondition,
    ValueBoundaryCondition,
    apply_flux_bcs,
)
from freesurface.core import Center, ConfigurationError, Face, RectilinearGrid
from freesurface.fields import NO_BOUNDARY_CONDITIONS, Field

CCC = (Center, Center, Center)


@pytest.fixture
def unit_grid():
    """4×4×2 grid with unit spacing, walls in x and z."""
    return RectilinearGrid(
        size=(4, 4, 2),
        x=(0, 4), y=(0, 4), z=(-2, 0),
        topology=("Bounded", "Periodic", "Bounded"),
    )


def tendency(grid, location=CCC):
    G = Field(grid, location, boundary_conditions=NO_BOUNDARY_CONDITIONS, name="G")
    G.set(0.0)
    return G


class TestLateralFlux:
    """Flux through west and east faces."""

    def test_unit_flux_on_unit_grid(self, unit_grid, arch):
        bcs = FieldBoundaryConditions.default(
            unit_grid, CCC, west=FluxBoundaryCondition(1.0), east=FluxBoundaryCondition(1.0)
        )
        G = tendency(unit_grid)
        FluxBoundaryConditionApplicator(unit_grid, CCC, bcs).apply(G, arch)
        g = G.interior()
        np.testing.assert_array_equal(g[0], 1.0)
        np.testing.assert_array_equal(g[-1], -1.0)
        np.testing.assert_array_equal(g[1:-1], 0.0)

    def test_divides_by_spacing(self, arch):
        grid = RectilinearGrid(size=(3, 2, 1), x=(0, 2, 3, 7), topology=("Bounded", "Periodic", "Bounded"))
        bcs = FieldBoundaryConditions.default(
            grid, CCC, west=FluxBoundaryCondition(4.0), east=FluxBoundaryCondition(4.0)
        )
        G = tendency(grid)
        FluxBoundaryConditionApplicator(grid, CCC, bcs).apply(G, arch)
        g = G.interior()
        np.testing.assert_allclose(g[0], 4.0 / 2.0)
        np.testing.assert_allclose(g[-1], -4.0 / 4.0)

    def test_one_sided(self, unit_grid, arch):
        bcs = FieldBoundaryConditions.default(unit_grid, CCC, east=FluxBoundaryCondition(2.0))
        applicator = FluxBoundaryConditionApplicator(unit_grid, CCC, bcs)
        assert applicator.flux_sides == ("east",)
        G = tendency(unit_grid)
        applicator.apply(G, arch)
        g = G.interior()
        np.testing.assert_array_equal(g[0], 0.0)
        np.testing.assert_array_equal(g[-1], -2.0)

    def test_accumulates_into_tendency(self, unit_grid, arch):
        bcs = FieldBoundaryConditions.default(unit_grid, CCC, west=FluxBoundaryCondition(1.0))
        G = tendency(unit_grid)
        G.set(3.0)
        FluxBoundaryConditionApplicator(unit_grid, CCC, bcs).apply(G, arch)
        np.testing.assert_array_equal(G.interior()[0], 4.0)

    def test_array_flux(self, unit_grid, arch):
        flux = np.arange(8, dtype=float).reshape(4, 2)
        bcs = FieldBoundaryConditions.default(unit_grid, CCC, west=FluxBoundaryCondition(flux))
        G = tendency(unit_grid)
        FluxBoundaryConditionApplicator(unit_grid, CCC, bcs).apply(G, arch)
        np.testing.assert_array_equal(G.interior()[0], flux)

    def test_callable_flux_with_args(self, unit_grid, arch):
        bcs = FieldBoundaryConditions.default(
            unit_grid, CCC, west=FluxBoundaryCondition(lambda j, k, grid, t: t * (j + 1) + 0 * k)
        )
        G = tendency(unit_grid)
        applicator = FluxBoundaryConditionApplicator(unit_grid, CCC, bcs)
        applicator.apply(G, arch, 2.0)
        expected = 2.0 * (np.arange(4) + 1)
        np.testing.assert_allclose(G.interior()[0], np.repeat(expected[:, None], 2, axis=1))


class TestVerticalFlux:
    """Flux through bottom and top faces."""

    def test_top_and_bottom(self, unit_grid, arch):
        bcs = FieldBoundaryConditions.default(
            unit_grid, CCC, bottom=FluxBoundaryCondition(0.5), top=FluxBoundaryCondition(2.0)
        )
        G = tendency(unit_grid)
        FluxBoundaryConditionApplicator(unit_grid, CCC, bcs).apply(G, arch)
        g = G.interior()
        # Az / V = 1 / Δz = 1
        np.testing.assert_allclose(g[:, :, 0], 0.5)
        np.testing.assert_allclose(g[:, :, -1], -2.0)

    def test_weights_by_layer_thickness(self, arch):
        grid = RectilinearGrid(size=(2, 2, 2), z=(-5, -4, 0), topology=("Periodic", "Periodic", "Bounded"))
        bcs = FieldBoundaryConditions.default(grid, CCC, top=FluxBoundaryCondition(8.0))
        G = tendency(grid)
        FluxBoundaryConditionApplicator(grid, CCC, bcs).apply(G, arch)
        np.testing.assert_allclose(G.interior()[:, :, -1], -8.0 / 4.0)
        np.testing.assert_array_equal(G.interior()[:, :, 0], 0.0)


class TestNonFluxKinds:
    """Every kind other than Flux leaves the tendency untouched."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {},
            {"west": ValueBoundaryCondition(1.0), "east": ValueBoundaryCondition(2.0)},
            {"west": GradientBoundaryCondition(1.0), "top": GradientBoundaryCondition(1.0)},
            {"east": NormalFlowBoundaryCondition(1.0)},
        ],
    )
    def test_noop(self, unit_grid, arch, overrides):
        bcs = FieldBoundaryConditions.default(unit_grid, CCC, **overrides)
        applicator = FluxBoundaryConditionApplicator(unit_grid, CCC, bcs)
        assert applicator.flux_sides == ()
        G = tendency(unit_grid)
        G.set(7.0)
        applicator.apply(G, arch)
        np.testing.assert_array_equal(G.interior(), 7.0)

    def test_absent_conditions(self, unit_grid, arch):
        G = tendency(unit_grid)
        FluxBoundaryConditionApplicator(unit_grid, CCC, NO_BOUNDARY_CONDITIONS).apply(G, arch)
        np.testing.assert_array_equal(G.interior(), 0.0)


class TestApplyFluxBcs:
    """apply_flux_bcs with fields and mappings."""

    def test_uses_field_conditions(self, unit_grid, arch):
        bcs = FieldBoundaryConditions.default(unit_grid, CCC, west=FluxBoundaryCondition(1.0))
        c = Field(unit_grid, CCC, boundary_conditions=bcs, name="c")
        G = tendency(unit_grid)
        apply_flux_bcs({"c": G}, {"c": c}, arch)
        np.testing.assert_array_equal(G.interior()[0], 1.0)
        assert c.flux_applicator is c.flux_applicator

    def test_location_mismatch(self, unit_grid, arch):
        bcs = FieldBoundaryConditions.default(unit_grid, CCC, west=FluxBoundaryCondition(1.0))
        c = Field(unit_grid, CCC, boundary_conditions=bcs)
        G = tendency(unit_grid, (Face, Center, Center))
        with pytest.raises(ConfigurationError, match="does not match"):
            apply_flux_bcs(G, c, arch)
