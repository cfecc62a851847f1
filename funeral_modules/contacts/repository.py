"""Contact and contact policy repositories."""

from datetime import datetime

from funeral_kernel.db.scd2 import SCD2Repository
from funeral_modules.contacts.models import Contact
from funeral_modules.contacts.orm import ContactModel, ContactPolicyModel
from funeral_modules.contacts.policy import ContactManagementPolicy


class ContactRepository(SCD2Repository[ContactModel, Contact]):
    model = ContactModel
    entity_type = "Contact"

    def find_by_funeral_home(
        self,
        funeral_home_id: str,
        include_merged: bool = False,
    ) -> list[Contact]:
        criteria = [ContactModel.funeral_home_id == funeral_home_id]
        if not include_merged:
            criteria.append(ContactModel.merged_into_contact_id.is_(None))
        return self.find_current(*criteria)

    def last_changed_at(self, business_key: str) -> datetime | None:
        """valid_from of the current version."""
        intervals = self.find_intervals(business_key)
        return intervals[-1].valid_from if intervals else None


class ContactPolicyRepository(SCD2Repository[ContactPolicyModel, ContactManagementPolicy]):
    model = ContactPolicyModel
    entity_type = "ContactManagementPolicy"
