#!/usr/bin/env python

from . import estimates
from . import extraction
from . import greedy
from . import initialization
from . import params
from . import pre_processing
from .greedy import GreedyROI as GreedyROI
from .params import GreedyParams as GreedyParams
