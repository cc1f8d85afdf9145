from __future__ import annotations
from enum import Enum


class Subject(str, Enum):
	"""Legal subject tag shared by documents, practice logs and calendar events."""

	TORTS = "Torts"
	CONTRACTS = "Contracts"
	CRIMINAL_LAW = "Criminal Law"
	PROPERTY = "Property"
	CONSTITUTIONAL_LAW = "Constitutional Law"
	EVIDENCE = "Evidence"
	CIVIL_PROCEDURE = "Civil Procedure"
	PROFESSIONAL_RESPONSIBILITY = "Professional Responsibility"
	COMMUNITY_PROPERTY = "Community Property"
	WILLS_TRUSTS = "Wills & Trusts"
	BUSINESS_ASSOCIATIONS = "Business Associations"
	REMEDIES = "Remedies"

	def __str__(self) -> str:
		return self.value
