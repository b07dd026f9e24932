"""
Attention heatmap rendering.
"""

from typing import List, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
import torch


def _tick_labels(text: str, length: int, pad_chars: str = "\n\t") -> List[str]:
    labels = []
    for i in range(length):
        char = text[i] if i < len(text) and text[i] not in pad_chars else ""
        labels.append(f'({i + 1}) "{char}"')
    return labels


def attention_heatmap(attention: Union[torch.Tensor, np.ndarray], input_str: str,
                      output_str: str, title: str = "Attention weights"):
    """
    Render an attention matrix as a heatmap.

    Output characters run along the x axis and input characters along the y
    axis, so each column shows where the decoder looked for one output step.

    Args:
        attention: [output_length, input_length], or [1, output_length, input_length]
        input_str: Encoder input string
        output_str: Decoded output string
        title: Figure title

    Returns:
        matplotlib Figure; the caller is responsible for closing it
    """
    if isinstance(attention, torch.Tensor):
        attention = attention.detach().cpu().numpy()
    if attention.ndim == 3:
        attention = attention[0]

    output_length, input_length = attention.shape

    fig, ax = plt.subplots(figsize=(10, 8))
    sns.heatmap(
        attention.T,
        xticklabels=_tick_labels(output_str, output_length),
        yticklabels=_tick_labels(input_str, input_length),
        cmap='Blues',
        vmin=0.0,
        vmax=1.0,
        ax=ax,
    )
    ax.set_title(title)
    ax.set_xlabel('Output characters')
    ax.set_ylabel('Input characters')
    plt.setp(ax.get_xticklabels(), rotation=45)
    plt.setp(ax.get_yticklabels(), rotation=0)
    fig.tight_layout()

    return fig
