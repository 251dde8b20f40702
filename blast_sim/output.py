"""
Output module for field grids.

A FieldRaster is a regular horizontal grid of observation points. Evaluated
values can be written as a quick-look PNG with a PGW world file so the map
drops straight into GIS software in mine grid coordinates.
"""

import numpy as np
from typing import Optional, Tuple
import warnings


class FieldRaster:
    """
    Regular grid of observation points on a horizontal plane.

    Row i holds y = min_y + i * resolution, column j holds
    x = min_x + j * resolution.
    """

    def __init__(
        self,
        bounds: Tuple[float, float, float, float],
        resolution: float = 1.0,
        elevation: float = 0.0
    ):
        """
        Initialize the grid.

        Args:
            bounds: (min_x, min_y, max_x, max_y) in metres
            resolution: Cell size in metres
            elevation: Z of the analysis plane in metres
        """
        if not resolution > 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")
        self.min_x, self.min_y, self.max_x, self.max_y = bounds
        if self.max_x < self.min_x or self.max_y < self.min_y:
            raise ValueError(f"Invalid bounds {bounds}")
        self.resolution = resolution
        self.elevation = elevation

        self.nx = int((self.max_x - self.min_x) / resolution) + 1
        self.ny = int((self.max_y - self.min_y) / resolution) + 1

        self.grid = np.zeros((self.ny, self.nx))
        self.model_name: Optional[str] = None
        self.unit: Optional[str] = None

    @property
    def x_coords(self) -> np.ndarray:
        return self.min_x + np.arange(self.nx) * self.resolution

    @property
    def y_coords(self) -> np.ndarray:
        return self.min_y + np.arange(self.ny) * self.resolution

    def points(self) -> np.ndarray:
        """Observation points of every cell, shape (ny * nx, 3), row-major."""
        xx, yy = np.meshgrid(self.x_coords, self.y_coords)
        zz = np.full(xx.shape, float(self.elevation))
        return np.column_stack([xx.ravel(), yy.ravel(), zz.ravel()])

    def set_values(
        self,
        values: np.ndarray,
        model_name: Optional[str] = None,
        unit: Optional[str] = None
    ):
        """
        Store evaluated values, one per point in ``points()`` order.

        Args:
            values: Array of ny * nx values
            model_name: Name of the model that produced them
            unit: Unit of the values
        """
        values = np.asarray(values, dtype=float)
        if values.size != self.nx * self.ny:
            raise ValueError(
                f"Expected {self.nx * self.ny} values, got {values.size}"
            )
        grid = values.reshape(self.ny, self.nx)
        self.grid = np.where(np.isfinite(grid), grid, 0.0)
        self.model_name = model_name
        self.unit = unit

    def save_raster(
        self,
        filename: str,
        colormap: str = "jet",
        vmin: Optional[float] = None,
        vmax: Optional[float] = None,
        log_scale: bool = False
    ):
        """
        Save raster as PNG with PGW world file.

        Args:
            filename: Output filename (without extension)
            colormap: Matplotlib colormap name
            vmin: Lower end of the colour range (default: smallest positive value)
            vmax: Upper end of the colour range (default: grid maximum)
            log_scale: Colour on a logarithmic scale
        """
        try:
            import matplotlib.pyplot as plt
            from matplotlib.colors import LogNorm
        except ImportError:
            warnings.warn("matplotlib not available, cannot save raster")
            return

        positive = self.grid[self.grid > 0]
        if vmin is None:
            vmin = float(np.min(positive)) if positive.size else 1e-10
        if vmax is None:
            vmax = float(np.max(positive)) if positive.size else 1.0

        fig, ax = plt.subplots(figsize=(10, 8))
        extent = [self.min_x, self.max_x, self.min_y, self.max_y]

        if log_scale:
            im = ax.imshow(
                np.flipud(np.where(self.grid > 0, self.grid, np.nan)),
                extent=extent,
                cmap=colormap,
                norm=LogNorm(vmin=max(vmin, 1e-10), vmax=vmax),
                interpolation='bilinear'
            )
        else:
            im = ax.imshow(
                np.flipud(self.grid),
                extent=extent,
                cmap=colormap,
                vmin=vmin,
                vmax=vmax,
                interpolation='bilinear'
            )

        label = self.model_name or "Field"
        if self.unit:
            label = f"{label} ({self.unit})"
        plt.colorbar(im, ax=ax, label=label)
        ax.set_xlabel('Easting (m)')
        ax.set_ylabel('Northing (m)')
        ax.set_title(f"{label} at Z = {self.elevation:.1f} m")
        ax.set_aspect('equal')

        plt.savefig(f"{filename}.png", dpi=150, bbox_inches='tight')
        plt.close(fig)

        self._save_world_file(filename)

    def _save_world_file(self, filename: str):
        """
        Save PGW world file for georeferencing.

        The world file format has 6 lines:
        1. x-scale (pixel size in x direction)
        2. rotation about y-axis (usually 0)
        3. rotation about x-axis (usually 0)
        4. y-scale (negative pixel size in y direction)
        5. x-coordinate of upper-left pixel center
        6. y-coordinate of upper-left pixel center
        """
        with open(f"{filename}.pgw", 'w') as f:
            f.write(f"{self.resolution}\n")
            f.write("0\n")
            f.write("0\n")
            # Negative because y increases downward in image
            f.write(f"{-self.resolution}\n")
            f.write(f"{self.min_x}\n")
            f.write(f"{self.min_y + (self.ny - 1) * self.resolution}\n")

    def get_grid_statistics(self, threshold: Optional[float] = None) -> dict:
        """
        Get statistics about the field grid.

        Args:
            threshold: Optional level; the area at or above it is reported

        Returns:
            Dictionary with statistics
        """
        covered = self.grid > 0
        covered_cells = int(np.sum(covered))
        cell_area = self.resolution ** 2

        stats = {
            "model": self.model_name,
            "unit": self.unit,
            "max_value": float(np.max(self.grid)),
            "min_value": float(np.min(self.grid)),
            "mean_covered_value": float(np.mean(self.grid[covered])) if covered_cells else 0.0,
            "covered_cells": covered_cells,
            "total_cells": self.nx * self.ny,
            "covered_area_m2": covered_cells * cell_area,
        }
        if threshold is not None:
            above = int(np.sum(self.grid >= threshold))
            stats["threshold"] = threshold
            stats["cells_above_threshold"] = above
            stats["area_above_threshold_m2"] = above * cell_area
        return stats
