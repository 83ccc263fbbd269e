"""
Domain errors raised by the pricing, settlement and lifecycle services.

Each error carries the HTTP status the API layer answers with; the handler
registered in main.py turns them into ``{"detail": message}`` responses.
"""


class InsuranceError(Exception):
    """Base class for expected business-rule failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PolicyNotFound(InsuranceError):
    status_code = 404

    def __init__(self, policy_id=None):
        super().__init__(f"Policy {policy_id} not found" if policy_id is not None else "Policy not found")
        self.policy_id = policy_id


class PolicyNotActive(InsuranceError):
    status_code = 400

    def __init__(self, policy_id, status: str):
        super().__init__(f"Policy {policy_id} is not active (status={status})")
        self.policy_id = policy_id
        self.status = status


class ClaimNotFound(InsuranceError):
    status_code = 404

    def __init__(self, claim_id):
        super().__init__(f"Claim {claim_id} not found")
        self.claim_id = claim_id


class PetNotFound(InsuranceError):
    status_code = 404

    def __init__(self, pet_id):
        super().__init__(f"Pet {pet_id} not found")
        self.pet_id = pet_id


class InvalidTransition(InsuranceError):
    """Requested status change is not allowed from the current status."""

    status_code = 409

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")
        self.entity = entity
        self.current = current
        self.target = target


class ClinicNotFound(InsuranceError):
    status_code = 404

    def __init__(self, clinic_id):
        super().__init__(f"Clinic {clinic_id} not found")
        self.clinic_id = clinic_id


class MedicalRecordNotFound(InsuranceError):
    status_code = 404

    def __init__(self, record_id):
        super().__init__(f"Medical record {record_id} not found")
        self.record_id = record_id
