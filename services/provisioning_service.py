"""
Account provisioning after a signup code has been consumed.

The backend offers no transaction across the auth API and the REST tables, so
each signup is an ordered list of steps. Nothing is undone automatically: when
a step fails, the saga logs what was already written (with how to undo it) and
what was still pending, so an operator can reconcile by hand.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from models import COMPANIES, EMPLOYEES, PROFILES, SUBSCRIPTIONS, ProfileRole
from services.company_service import ROSTER_NOT_FOUND_MESSAGE, generate_company_code, resolve_roster_entry
from services.errors import NotFound
from services.supabase_client import SupabaseClient, eq, is_null

logger = logging.getLogger(__name__)

SUBSCRIPTION_CURRENCY = "GBP"


@dataclass
class SagaStep:
    name: str
    action: Callable[[Dict[str, Any]], Any]
    compensation: str


class Saga:
    def __init__(self, name: str, steps: List[SagaStep]):
        self.name = name
        self.steps = steps

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Run every step in order; each result is stored in `state` under the step name."""
        completed: List[SagaStep] = []
        for index, step in enumerate(self.steps):
            try:
                state[step.name] = step.action(state)
            except Exception:
                remaining = [s.name for s in self.steps[index:]]
                undo = [f"{s.name}: {s.compensation}" for s in reversed(completed)]
                written = {s.name: state.get(s.name) for s in completed}
                logger.error(
                    f"{self.name} failed at step '{step.name}'. "
                    f"Written: {written}. Undo (newest first): {undo or 'nothing'}. "
                    f"Not run: {remaining}"
                )
                raise
            completed.append(step)
        return state


@dataclass
class OwnerSignup:
    email: str
    password: str
    full_name: str
    company_name: str
    company_size: str
    module_ids: List[str] = field(default_factory=list)
    company_size_id: Optional[str] = None
    company_size_label: Optional[str] = None
    company_size_price: float = 0
    modules_total: float = 0
    total_monthly: float = 0


@dataclass
class EmployeeSignup:
    email: str
    password: str
    full_name: str
    company_code: str


@dataclass
class ProvisionedAccount:
    user_id: str
    company_id: str
    company_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"user_id": self.user_id, "company_id": self.company_id}
        if self.company_code:
            data["company_code"] = self.company_code
        return data


class AccountProvisioner:
    def __init__(self, client: SupabaseClient):
        self.client = client

    def provision_owner(self, signup: OwnerSignup) -> ProvisionedAccount:
        client = self.client

        def create_company(state):
            return client.insert_one(COMPANIES, {
                "company_name": signup.company_name,
                "owner_user_id": state["user_id"],
                "company_code": state["company_code"],
                "company_size": signup.company_size,
            })

        def create_profile(state):
            client.insert(PROFILES, [{
                "user_id": state["user_id"],
                "email": signup.email,
                "company_id": state["company"]["id"],
                "company_name": signup.company_name,
                "full_name": signup.full_name,
                "role": ProfileRole.OWNER.value,
                "is_admin": True,
            }], returning=False)
            return state["user_id"]

        def create_subscription(state):
            client.insert(SUBSCRIPTIONS, [{
                "user_id": state["user_id"],
                "company_size_id": signup.company_size_id or signup.company_size,
                "company_size_label": signup.company_size_label or signup.company_size,
                "company_size_price": signup.company_size_price,
                "selected_modules": signup.module_ids,
                "selected_module_ids": signup.module_ids,
                "modules_total": signup.modules_total,
                "total_monthly": signup.total_monthly,
                "currency": SUBSCRIPTION_CURRENCY,
                "status": "active",
            }], returning=False)
            return state["user_id"]

        saga = Saga("Owner signup", [
            SagaStep(
                "user_id",
                lambda state: client.create_user(signup.email, signup.password, {"full_name": signup.full_name}),
                "DELETE /auth/v1/admin/users/<user_id>",
            ),
            SagaStep(
                "company_code",
                lambda state: generate_company_code(client, signup.company_name),
                "nothing written",
            ),
            SagaStep("company", create_company, "DELETE companies where id = <company.id>"),
            SagaStep("profile", create_profile, "DELETE profiles where user_id = <user_id>"),
            SagaStep("subscription", create_subscription, "DELETE subscriptions where user_id = <user_id>"),
        ])
        state = saga.run({})

        account = ProvisionedAccount(
            user_id=state["user_id"],
            company_id=str(state["company"]["id"]),
            company_code=state["company_code"],
        )
        logger.info(f"Provisioned owner {account.user_id} for company {account.company_id}")
        return account

    def provision_employee(self, signup: EmployeeSignup) -> ProvisionedAccount:
        client = self.client
        # read-only lookups first, so a roster miss leaves no auth user behind
        company, employee = resolve_roster_entry(client, signup.company_code, signup.full_name)

        def create_profile(state):
            client.insert(PROFILES, [{
                "user_id": state["user_id"],
                "email": signup.email,
                "company_id": company["id"],
                "company_name": company.get("company_name"),
                "full_name": employee.get("full_name") or signup.full_name,
                "role": ProfileRole.EMPLOYEE.value,
                "is_admin": bool(employee.get("is_admin")),
            }], returning=False)
            return state["user_id"]

        def link_roster_row(state):
            # only an unlinked row may be claimed; a concurrent signup may have won it
            linked = client.update(
                EMPLOYEES,
                {"id": eq(employee["id"]), "user_id": is_null()},
                {"user_id": state["user_id"]},
                returning=True,
            )
            if not linked:
                raise NotFound(ROSTER_NOT_FOUND_MESSAGE)
            return employee["id"]

        saga = Saga("Employee signup", [
            SagaStep(
                "user_id",
                lambda state: client.create_user(signup.email, signup.password, {"full_name": signup.full_name}),
                "DELETE /auth/v1/admin/users/<user_id>",
            ),
            SagaStep("profile", create_profile, "DELETE profiles where user_id = <user_id>"),
            SagaStep("employee", link_roster_row, "SET employees.user_id = null where id = <employee>"),
        ])
        state = saga.run({})

        account = ProvisionedAccount(user_id=state["user_id"], company_id=str(company["id"]))
        logger.info(f"Provisioned employee {account.user_id} in company {account.company_id}")
        return account
