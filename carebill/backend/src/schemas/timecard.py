"""Timecard schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field

from carebill.backend.src.services.calculations import timecard_total_pay


class TimecardEntry(BaseModel):
    """Hours worked by an employee at a clinic on one day."""

    id: str
    employee_id: str = Field(alias="employeeId")
    clinic_id: str = Field(alias="clinicId")
    date: str
    hours_worked: float = Field(ge=0, alias="hoursWorked")
    hourly_rate: float = Field(ge=0, alias="hourlyRate")
    description: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @computed_field(alias="totalPay")  # type: ignore[prop-decorator]
    @property
    def total_pay(self) -> float:
        return timecard_total_pay(self.hours_worked, self.hourly_rate)


class TimecardEntryCreate(BaseModel):
    employee_id: str = Field(alias="employeeId")
    clinic_id: str = Field(alias="clinicId")
    date: str
    hours_worked: float = Field(ge=0, alias="hoursWorked")
    hourly_rate: float = Field(ge=0, alias="hourlyRate")
    description: str = ""

    model_config = ConfigDict(populate_by_name=True)


class TimecardEntryUpdate(BaseModel):
    employee_id: str | None = Field(default=None, alias="employeeId")
    clinic_id: str | None = Field(default=None, alias="clinicId")
    date: str | None = None
    hours_worked: float | None = Field(default=None, ge=0, alias="hoursWorked")
    hourly_rate: float | None = Field(default=None, ge=0, alias="hourlyRate")
    description: str | None = None

    model_config = ConfigDict(populate_by_name=True)
