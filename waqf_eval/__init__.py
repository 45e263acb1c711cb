"""Waqf institutions evaluation, compliance and risk tracking"""

__version__ = "1.0.0"
__application__ = "Waqf Evaluation"
__description__ = "Evaluation, compliance and improvement planning for endowment institutions"
