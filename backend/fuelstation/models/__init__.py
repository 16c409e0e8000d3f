from .employees import Employee
from .shifts import Shift, ShiftEmployee, ShiftPaymentMethod, SHIFT_OPEN, SHIFT_CLOSED
from .sales import Sale
from .finance import Expense, FuelSupply, Transaction, ProfitLossSummary

__all__ = [
    'Employee',
    'Shift', 'ShiftEmployee', 'ShiftPaymentMethod', 'SHIFT_OPEN', 'SHIFT_CLOSED',
    'Sale',
    'Expense', 'FuelSupply', 'Transaction', 'ProfitLossSummary',
]
