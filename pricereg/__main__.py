"""
Command-line entry point.

    python -m pricereg balance_sheets.csv --response close_price
"""

import argparse
import logging
import os
import sys

from . import config
from .config import Thresholds
from .data import load_dataset
from .exceptions import PriceRegError
from .pipeline import run_analysis

log = logging.getLogger("pricereg")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pricereg",
        description="Select, diagnose and Box-Cox refine an OLS model of "
                    "closing stock price on balance-sheet items.",
    )
    parser.add_argument("csv", help="Input CSV, one row per company-period")
    parser.add_argument(
        "--response", default=config.RESPONSE_COLUMN,
        help="Response column (default: %(default)s)",
    )
    parser.add_argument(
        "--alpha", type=float, default=config.ALPHA,
        help="Significance level of the assumption tests",
    )
    parser.add_argument(
        "--vif-max", type=float, default=config.VIF_MAX,
        help="Multicollinearity threshold",
    )
    parser.add_argument(
        "--cooks-max", type=float, default=config.COOKS_MAX,
        help="Cook's distance threshold",
    )
    parser.add_argument(
        "--enter", type=float, default=config.SIGNIFICANCE_ENTER,
        help="p-value to enter in forward / stepwise selection",
    )
    parser.add_argument(
        "--remove", type=float, default=config.SIGNIFICANCE_REMOVE,
        help="p-value to leave in backward / stepwise selection",
    )
    parser.add_argument(
        "--no-terms", action="store_true",
        help="Skip the squared / interaction term search",
    )
    parser.add_argument(
        "--plots", metavar="DIR",
        help="Write diagnostic figures to DIR",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log every selection and refinement step",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        thresholds = Thresholds(
            alpha=args.alpha, vif_max=args.vif_max, cooks_max=args.cooks_max,
            significance_enter=args.enter, significance_remove=args.remove,
        )
        dataset = load_dataset(args.csv, args.response)
        result = run_analysis(dataset, thresholds,
                              include_terms=not args.no_terms, verbose=True)
    except (OSError, ValueError, PriceRegError) as exc:
        log.error("%s", exc)
        return 1

    if args.plots:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from .plotting import plot_boxcox_profile, plot_diagnostics

        os.makedirs(args.plots, exist_ok=True)
        figures = {
            "initial_diagnostics.png": plot_diagnostics(
                result.initial_model, result.initial_report,
                cooks_max=thresholds.cooks_max),
            "refined_diagnostics.png": plot_diagnostics(
                result.final_model, result.final_report,
                cooks_max=thresholds.cooks_max),
        }
        if result.refinement.search is not None:
            figures["boxcox_profile.png"] = plot_boxcox_profile(
                result.refinement.search)
        for name, fig in figures.items():
            path = os.path.join(args.plots, name)
            fig.savefig(path, dpi=150, bbox_inches="tight")
            plt.close(fig)
            log.info("Saved %s", path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
