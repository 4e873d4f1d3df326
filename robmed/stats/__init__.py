"""Statistical estimation and inference modules."""

from . import correction as correction
from . import covariance as covariance
from . import distributions as distributions
from . import intervals as intervals
from . import regression as regression
