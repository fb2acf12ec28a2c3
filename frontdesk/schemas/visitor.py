from datetime import datetime

from pydantic import BaseModel, Field


class HealthScreeningIn(BaseModel):
    testResult: str = ""
    temperature: float | None = None
    hasSymptoms: bool = False
    symptoms: list[str] = Field(default_factory=list)
    riskFactors: list[str] = Field(default_factory=list)
    screeningDate: datetime | None = None
    noFeverOrCovidSymptoms: bool = False
    notInContactWithIll: bool = False
    visitorAgreementAcknowledgement: bool = False


class FamilyMemberIn(BaseModel):
    firstName: str
    lastName: str = ""
    relationship: str = ""
    age: int | None = None
    phone: str | None = None
    email: str | None = None


class VisitorCheckIn(BaseModel):
    fullName: str = ""
    firstName: str = ""
    lastName: str = ""
    email: str = ""
    phoneNumber: str = ""
    relationship: str = ""
    residentName: str = ""
    roomNumber: str = ""
    visitorMeetingSelection: str = "resident"
    visitorCategory: str | None = None
    visitorCategoryOther: str | None = None
    staffDepartment: str | None = None
    visitPurpose: str = ""
    visitPurposeOther: str | None = None
    appointmentType: str = "walk-in"
    appointmentTime: str | None = None
    accessLevel: str = "family"
    emergencyContact: str = ""
    emergencyPhone: str = ""
    photoUrl: str | None = None
    notes: str | None = None
    isApproved: bool = True
    healthScreening: HealthScreeningIn | None = None
    familyMembers: list[FamilyMemberIn] = Field(default_factory=list)
    visitorIdNumber: str | None = None
    isReturningVisitor: bool = False


class EvacuationRequest(BaseModel):
    visitorIds: list[str] | None = None


class QRLookupRequest(BaseModel):
    qrCode: str
