"""Valores de contrato e datas de vencimento das mensalidades.

Um contrato combina uma implementação (à vista ou parcelada) com uma
manutenção mensal cobrada por número de WhatsApp contratado.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta

from models.subscription import PAID, PENDING

DEFAULT_CONTRACT_DURATION = 12
DEFAULT_PAYMENT_DAY = 10


def round_money(value) -> float:
    return round(float(value or 0), 2)


@dataclass(frozen=True)
class ContractAmounts:
    monthly_implementation_amount: float
    monthly_maintenance_amount: float
    total_monthly_amount: float
    total_contract_value: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "monthlyImplementationAmount": self.monthly_implementation_amount,
            "monthlyMaintenanceAmount": self.monthly_maintenance_amount,
            "totalMonthlyAmount": self.total_monthly_amount,
            "totalContractValue": self.total_contract_value,
        }


def compute_amounts(
    implementation_value: float,
    payment_type: str,
    installments: Optional[int],
    maintenance_value_per_number: float,
    number_of_numbers: int,
    contract_duration: int = DEFAULT_CONTRACT_DURATION,
) -> ContractAmounts:
    implementation_value = float(implementation_value or 0)
    maintenance = float(maintenance_value_per_number or 0) * int(number_of_numbers or 0)

    # À vista (ou sem parcelas) é pago fora da recorrência
    if payment_type == "parcelado" and installments and installments > 0:
        implementation = implementation_value / installments
    else:
        implementation = 0.0

    return ContractAmounts(
        monthly_implementation_amount=round_money(implementation),
        monthly_maintenance_amount=round_money(maintenance),
        total_monthly_amount=round_money(maintenance + implementation),
        total_contract_value=round_money(implementation_value + maintenance * (contract_duration or 0)),
    )


def next_occurrence(day: int, after: date) -> date:
    """Próxima data com dia-do-mês `day` estritamente depois de `after`.

    Tenta o mês de `after` e, se a data não for posterior, passa para o
    mês seguinte. Dias além do fim do mês caem no último dia (31 em
    fevereiro -> 28/29).
    """
    candidate = after + relativedelta(day=day)
    if candidate > after:
        return candidate
    return after + relativedelta(months=1, day=day)


def first_due_date(start: date, payment_day: int) -> date:
    return next_occurrence(payment_day, start)


def build_contract_schedule(
    *,
    start_date: date,
    payment_day: int,
    implementation_value: float,
    payment_type: str,
    installments: Optional[int],
    maintenance_value_per_number: float,
    number_of_numbers: int,
    contract_duration: int = DEFAULT_CONTRACT_DURATION,
    implementation_paid: bool = False,
    today: Optional[date] = None,
) -> List[Dict]:
    """Gera uma linha (colunas da tabela subscriptions) por mês de contrato."""
    today = today or date.today()
    amounts = compute_amounts(
        implementation_value,
        payment_type,
        installments,
        maintenance_value_per_number,
        number_of_numbers,
        contract_duration,
    )
    first_due = first_due_date(start_date, payment_day)
    implementation_months = installments if payment_type == "parcelado" and installments else 0

    periods = []
    for n in range(1, contract_duration + 1):
        in_implementation = n <= implementation_months
        amount = amounts.total_monthly_amount if in_implementation else amounts.monthly_maintenance_amount
        paid_upfront = implementation_paid and n == 1
        label = "Manutenção + Implementação" if in_implementation else "Apenas Manutenção"
        periods.append({
            "amount": amount,
            "due_date": first_due + relativedelta(months=n - 1, day=payment_day),
            "payment_date": today if paid_upfront else None,
            "status": PAID if paid_upfront else PENDING,
            # todas as parcelas já existem: nenhuma gera sucessora
            "is_recurring": False,
            "recurrence_day": payment_day,
            "category": "Serviço",
            "description": f"Mensalidade {n}/{contract_duration} ({label})",
            "start_date": start_date,
            "current_installment": n,
            "total_installments": contract_duration,
            "is_paused": False,
            "implementation_value": implementation_value,
            "maintenance_value_per_number": maintenance_value_per_number,
            "number_of_numbers": number_of_numbers,
            "implementation_payment_type": payment_type,
            "implementation_installments": installments,
            "contract_duration": contract_duration,
            "payment_day": payment_day,
            "monthly_implementation_amount": amounts.monthly_implementation_amount if in_implementation else 0.0,
            "monthly_maintenance_amount": amounts.monthly_maintenance_amount,
            "total_monthly_amount": amount,
        })
    return periods
