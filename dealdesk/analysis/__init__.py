"""Deal analysis engine for evaluating investment strategies."""

from dealdesk.analysis.engine import AnalysisEngine
from dealdesk.analysis.valuation import ValuationCalculator, default_rehab_budget
from dealdesk.analysis.wholesale import WholesaleAnalyzer
from dealdesk.analysis.rehab import RehabAnalyzer
from dealdesk.analysis.brrrr import BRRRRAnalyzer
from dealdesk.analysis.novation import NovationAnalyzer
from dealdesk.analysis.funding import FundingAnalyzer
