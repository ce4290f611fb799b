from prompt_studio.models.test_case import TestCase
from prompt_studio.models.result import ExecutionResult
from prompt_studio.models.grade import Grade
from prompt_studio.models.setting import Setting

__all__ = ["TestCase", "ExecutionResult", "Grade", "Setting"]
