"""Error taxonomy for the analysis run."""


class AnalysisError(Exception):
    """Base class for every error raised by the pipeline."""


class DataUnavailable(AnalysisError):
    """The dataset could not be fetched or parsed. Fatal for the run."""


class InsufficientData(AnalysisError):
    """Too few observations for the requested model (residual df <= 0)."""


class SingularDesign(AnalysisError):
    """The design matrix is rank-deficient (exact collinearity)."""


class NotComputable(AnalysisError):
    """A statistic is undefined for the given input, e.g. zero variance."""


class IncomparableModels(AnalysisError):
    """Models passed to the comparator do not share response / observations."""
