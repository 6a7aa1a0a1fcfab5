"""Shared fixtures for the proxy tests."""

import pytest

from schema_search import SchemaDocument

SAMPLE_SDL = """\
# Example clinic schema
type Query {
  # Look up a single patient
  patient(patientId: ID!): Patient
  appointments(patientId: ID, first: Int): [Appointment!]!
  currentUser: User
}

type Mutation {
  createAppointment(input: CreateAppointmentInput!): Appointment
  deletePatient(id: ID!): Boolean
}

type Patient {
  id: ID!
  name: String
  appointments: [Appointment!]!
}

type Appointment {
  id: ID!
  startsAt: String
  patient: Patient
}

type User {
  id: ID!
  email: String
}

input CreateAppointmentInput {
  startsAt: String!
  notes: String
}

enum AppointmentStatus {
  BOOKED
  CANCELLED
}

interface Node {
  id: ID!
}

union SearchResult = Patient | Appointment

scalar DateTime
"""


@pytest.fixture
def sample_document() -> SchemaDocument:
    return SchemaDocument.from_text(SAMPLE_SDL)
