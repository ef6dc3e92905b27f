"""
Domain Fixtures for HydroBGC Tests

Provides a small synthetic catchment: four triangular elements on a
200 m x 100 m rectangle drained by one river segment along x = 100 m,
hourly station forcing and matching configurations.

Layout (node indices)::

    3 ---- 4 ---- 5
    | E1 / | E3 / |
    |  /   |  /   |
    | / E0 | / E2 |
    0 ---- 1 ---- 2

The river runs from node 4 to node 1 between E0 (left) and E3 (right).
"""

import numpy as np
import pandas as pd
import pytest

from hydrobgc.core.config import HydroBGCConfig
from hydrobgc.forcing import MeteorologicalForcing
from hydrobgc.mesh import (
    BoundaryKind,
    Element,
    GeologyType,
    LandCoverType,
    MeshNetwork,
    Node,
    RiverMaterial,
    RiverSegment,
    RiverShape,
    SoilType,
)

START = '2000-06-01 00:00'

NODE_XY = [(0.0, 0.0), (100.0, 0.0), (200.0, 0.0), (0.0, 100.0), (100.0, 100.0), (200.0, 100.0)]
NODE_ZMAX = [12.0, 10.0, 12.0, 13.0, 11.0, 13.0]
SOIL_DEPTH = 2.0


def build_nodes():
    return [Node(k, x, y, z - SOIL_DEPTH, z) for k, ((x, y), z) in enumerate(zip(NODE_XY, NODE_ZMAX))]


def build_test_mesh(with_river=True, ecophys=('DBF', 'C3GRASS'), left_bc=BoundaryKind.NO_FLOW,
                    boundary_series=()):
    """Four-element catchment; ``left_bc`` applies to the x = 0 edge of E1."""
    nodes = build_nodes()
    elements = [
        Element(0, (0, 1, 4), (None, 1, None), landcover=0),
        Element(1, (0, 4, 3), (None, None, 0), landcover=0,
                bc=(BoundaryKind.NO_FLOW, left_bc, BoundaryKind.NO_FLOW),
                bc_series=(None, 0 if left_bc != BoundaryKind.NO_FLOW else None, None)),
        Element(2, (1, 2, 5), (None, 3, None), landcover=1),
        Element(3, (1, 5, 4), (None, None, 2), landcover=1),
    ]
    rivers = []
    if with_river:
        rivers = [RiverSegment(0, from_node=4, to_node=1, downstream=None, left=0, right=3)]
    return MeshNetwork(
        nodes=nodes,
        elements=elements,
        rivers=rivers,
        soils=[SoilType(ksatv_inf=1.0e-5, thetas=0.45, thetar=0.05, alpha=2.0, beta=1.6)],
        geologies=[GeologyType(ksath=2.0e-5, ksatv=1.0e-6, thetas=0.45, thetar=0.05,
                               alpha=2.0, beta=1.6)],
        landcovers=[
            LandCoverType(laimax=4.0, vegfrac=0.8, albedo=0.18, rough=0.3, ecophys=ecophys[0]),
            LandCoverType(laimax=2.0, vegfrac=0.6, albedo=0.22, rough=0.2, rzd=0.3,
                          ecophys=ecophys[1]),
        ],
        shapes=[RiverShape(depth=0.5, interp_order=1, coeff=2.0)],
        materials=[RiverMaterial(rough=0.04, cwr=0.6, ksath=1.0e-5, ksatv=1.0e-6, bedthick=0.1)],
        boundary_series=boundary_series,
    )


def station_frame(start=START, days=3, prcp_mm_day=4.0, temp_mean=15.0, temp_amp=6.0):
    """Hourly single-station forcing with a diurnal cycle."""
    index = pd.date_range(start, periods=24 * days + 1, freq='h')
    hour = index.hour.to_numpy() + index.minute.to_numpy() / 60.0
    phase = np.sin(2.0 * np.pi * (hour - 9.0) / 24.0)
    return pd.DataFrame(
        {
            'prcp': np.full(index.size, prcp_mm_day / 1000.0 / 86400.0),
            'sfctmp': temp_mean + temp_amp * phase,
            'rh': np.full(index.size, 0.6),
            'wind': np.full(index.size, 2.0),
            'solar': np.maximum(800.0 * np.sin(np.pi * (hour - 6.0) / 12.0), 0.0),
            'pres': np.full(index.size, 101325.0),
        },
        index=index,
    )


def build_forcing(mesh, days=3, latitude=40.0, **kwargs):
    return MeteorologicalForcing.from_dataframes(
        [station_frame(days=days, **kwargs)], mesh.station_index, latitude=latitude)


def config_dict(days=2, bgc=True, start=START, **overrides):
    end = pd.Timestamp(start) + pd.Timedelta(days=days)
    data = {
        'START': start,
        'END': end.strftime('%Y-%m-%d %H:%M'),
        'MODEL_STEPSIZE': 21600,
        'STEPSIZE_FACTOR': 1.0,
        'ABSTOL': 1.0e-5,
        'RELTOL': 1.0e-4,
        'INIT_SOLVER_STEP': 1.0,
        'MAX_SOLVER_STEP': 1800.0,
        'BGC_ENABLED': bgc,
        'LATITUDE': 40.0,
        'PRINT_VARIABLES': ['SURF', 'UNSAT', 'GW', 'STAGE', 'ACC_OUTFLOW'],
    }
    data.update(overrides)
    return data


@pytest.fixture(scope="function")
def test_mesh():
    """Four-element catchment with one river segment."""
    return build_test_mesh()


@pytest.fixture(scope="function")
def test_forcing(test_mesh):
    """Three days of hourly forcing for the test catchment."""
    return build_forcing(test_mesh, days=3)


@pytest.fixture(scope="function")
def hydro_config():
    """Two-day configuration with biogeochemistry disabled."""
    return HydroBGCConfig.from_dict(config_dict(bgc=False))


@pytest.fixture(scope="function")
def bgc_config():
    """Two-day configuration with biogeochemistry enabled."""
    return HydroBGCConfig.from_dict(config_dict(bgc=True))


def load_test_domain(config):
    """Domain loader for the command line: test catchment plus forcing covering the run."""
    mesh = build_test_mesh()
    span = config.time.end_seconds - config.time.start_seconds
    days = int(np.ceil(span / 86400.0)) + 1
    return mesh, build_forcing(mesh, days=days, latitude=config.bgc.latitude,
                               start=pd.Timestamp(config.time.start))
