import numpy as np
import matplotlib.pyplot as plt

font = {'family': 'serif',
        'weight': 'bold',
        'size': 8}


def plot_results(result, forcing=None, reset_marks=True):
    """Stacked time series of the model outputs; returns the figure.

    Panels: forcing velocity and U0, ds and db, tau, Shields and Sleath.
    Reset times of flow reversals are drawn as thin vertical lines.
    """
    with plt.rc_context({'font.family': 'serif', 'font.size': 7}):
        fig, axs = plt.subplots(4, 1, figsize=(8, 9), sharex=True)
        _draw(axs, result, forcing, reset_marks)
        fig.tight_layout()
    return fig


def _draw(axs, result, forcing, reset_marks):
    t = result.t

    if forcing is not None:
        axs[0].plot(forcing.T, forcing.U, '--k', linewidth=1, label='U (depth mean)')
    axs[0].plot(t, result.U0, '-', color='b', linewidth=1.5, label='U0 (free stream)')
    axs[0].set_ylabel('Velocity [m/s]', fontdict=font)

    axs[1].plot(t, result.ds * 1000, '-', color=[0.8, 0.6, 0], linewidth=1.5, label='ds')
    axs[1].set_ylabel('ds [mm]', fontdict=font)
    ax_db = axs[1].twinx()
    ax_db.semilogy(t, np.maximum(result.db, 1e-9), ':', color='g', linewidth=1, label='db')
    ax_db.set_ylabel('db [m]', fontdict=font)

    axs[2].plot(t, result.tau, '-', color='r', linewidth=1.5, label='tau')
    axs[2].set_ylabel('tau [Pa]', fontdict=font)

    axs[3].plot(t, result.Shields, '-', color='k', linewidth=1.5, label='Shields')
    axs[3].plot(t, result.Sleath, '-', color=[0.5, 0.5, 0.5], linewidth=1, label='Sleath')
    axs[3].set_ylabel('[-]', fontdict=font)
    axs[3].set_xlabel('Time [s]', fontdict=font)

    if reset_marks:
        for tr in result.trajectory.reset_times('reversal'):
            for ax in axs:
                ax.axvline(tr, color=[0.7, 0.7, 0.7], linewidth=0.5, zorder=0)

    for ax in axs:
        ax.grid(True)
        ax.legend(loc='upper right')
