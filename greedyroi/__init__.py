#!/usr/bin/env python

from importlib.metadata import version, PackageNotFoundError

from greedyroi.summary_images import correlation_image, peak_correlation_image
from greedyroi.source_extraction.greedy import GreedyROI, GreedyParams
from greedyroi.source_extraction.greedy.initialization import greedyROI_corr_endoscope

try:
    __version__ = version('greedyroi')
except PackageNotFoundError:
    __version__ = '1.0'
