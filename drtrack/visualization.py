"""Track plots for visual inspection.

`TrackPlotter` draws the uncorrected and corrected tracks of an output
table together with the verified positions and the anchors used for
correction.  It only reads the table; the reconstruction never calls
it.
"""

from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd


class TrackPlotter:
    """Plot reconstructed tracks."""

    def __init__(self, output_dir: Optional[Path] = None):
        """Initialize plotter.

        Parameters
        ----------
        output_dir : Path, optional
            Directory for saved figures.  Required for static plots.
        """
        self.output_dir = Path(output_dir) if output_dir is not None else None
        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)

    def plot(
        self,
        table: pd.DataFrame,
        stride: int = 1,
        interactive: bool = False,
        filename: str = "track.png"
    ) -> Optional[Path]:
        """Plot the tracks of an output table.

        Parameters
        ----------
        table : pandas.DataFrame
            Output table of `TrackPipeline.run`.
        stride : int, optional
            Plot every ``stride``-th row.
        interactive : bool, optional
            Show the figure in a window instead of saving it.
        filename : str, optional
            Name of the saved figure.

        Returns
        -------
        Path or None
            Path of the saved figure, None in interactive mode.
        """
        if stride < 1:
            raise ValueError("stride must be a positive integer")
        if not interactive and self.output_dir is None:
            raise ValueError("output_dir is required for static plots")

        if not interactive:
            plt.switch_backend("Agg")

        rows = table.iloc[::stride]
        fig, ax = plt.subplots(figsize=(8, 8))
        ax.plot(rows["DR.longitude"], rows["DR.latitude"], color="tab:red", lw=1, label="Uncorrected")
        if "DRc.longitude" in table:
            ax.plot(rows["DRc.longitude"], rows["DRc.latitude"], color="tab:blue", lw=1,
                    label="Corrected")
        if "VP.longitude" in table:
            # verified positions are sparse, so they are never under-sampled
            vp = table[table["VP.present"]]
            ax.scatter(vp["VP.longitude"], vp["VP.latitude"], s=6, color="0.5", label="Verified")
            if "VP.used.to.correct" in table:
                used = table[table["VP.used.to.correct"]]
                ax.scatter(used["VP.longitude"], used["VP.latitude"], s=24, marker="x",
                           color="black", label="Anchors")
        ax.set_xlabel("Longitude")
        ax.set_ylabel("Latitude")
        ax.set_aspect("equal", adjustable="datalim")
        ax.legend(loc="best")
        fig.tight_layout()

        if interactive:
            plt.show()
            return None

        path = self.output_dir / filename
        fig.savefig(path, dpi=150)
        plt.close(fig)
        return path
