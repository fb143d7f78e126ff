import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from IHSetSheetFlow import run_model, synthetic_forcing
from IHSetSheetFlow.plotting import plot_results


def test_plot_results_draws_all_panels():
    forcing = synthetic_forcing(duration=6.0, dt=0.1)
    res = run_model(**forcing.as_kwargs(), d50=2e-4, w=0.02, beta=0.0, ds0=2e-4)
    fig = plot_results(res, forcing)
    # four stacked panels plus the twin axis for db
    assert len(fig.axes) == 5
    assert fig.axes[3].get_xlabel() == "Time [s]"
    plt.close(fig)


def test_plot_results_leaves_global_style_alone():
    forcing = synthetic_forcing(duration=3.0, dt=0.1)
    res = run_model(**forcing.as_kwargs(), d50=2e-4, w=0.02, beta=0.0, ds0=2e-4)
    before = (list(plt.rcParams['font.family']), plt.rcParams['font.size'])
    fig = plot_results(res, forcing, reset_marks=False)
    assert (list(plt.rcParams['font.family']), plt.rcParams['font.size']) == before
    assert fig.axes[0].yaxis.label.get_fontfamily() == ['serif']
    plt.close(fig)
