"""
Static Schema
=============

Hard-coded description of the tender database, used when live
introspection is switched off or unavailable.
"""

from tender_sql.models import ColumnDescriptor, SchemaSnapshot, TableDescriptor

STATIC_TABLES = {
    "tenderTender": [
        "TenderID", "KeyContact", "AddBy", "ProjectName", "OpenDate", "ApplyTo",
        "Value", "ReturnDate", "Status", "Type", "Source", "ManagingTender",
        "Consultant", "Notes", "CreatedAt", "UpdatedAt", "IsDeleted", "DeletedAt",
    ],
    "tenderContact": [
        "ContactID", "CompanyID", "AddBy", "FirstName", "Surname", "Phone",
        "Email", "Status", "CreatedAt", "UpdatedAt", "IsDeleted", "DeletedAt",
    ],
    "tenderCompany": [
        "CompanyID", "AddBy", "Name", "Phone", "Email", "CreatedAt", "UpdatedAt",
    ],
    "tenderEmployee": ["UserID", "LastLogin", "Name", "Email"],
}

STATIC_RELATIONSHIPS = [
    "tenderTender.KeyContact -> tenderContact.ContactID",
    "tenderContact.CompanyID -> tenderCompany.CompanyID",
    "tenderTender.AddBy -> tenderEmployee.UserID (AddBy stores UserID)",
    "tenderContact.AddBy -> tenderEmployee.UserID",
    "tenderCompany.AddBy -> tenderEmployee.UserID",
]

# Query-construction examples for the tender domain.
STATIC_EXAMPLES = [
    (
        "What's the biggest tender?",
        "SELECT TOP 1 ProjectName, Value, Status, Type, OpenDate FROM tenderTender "
        "WHERE (IsDeleted = 0 OR IsDeleted IS NULL) ORDER BY Value DESC",
    ),
    (
        "What's the biggest pharma tender?",
        "SELECT TOP 1 ProjectName, Value, Status, Type, OpenDate FROM tenderTender "
        "WHERE (IsDeleted = 0 OR IsDeleted IS NULL) AND Type = 'Pharma' ORDER BY Value DESC",
    ),
    (
        "Show me all tenders",
        "SELECT TOP 20 ProjectName, Value, Status, Type, OpenDate FROM tenderTender "
        "WHERE (IsDeleted = 0 OR IsDeleted IS NULL) ORDER BY CreatedAt DESC",
    ),
    (
        "How many tenders by type?",
        "SELECT Type AS TenderType, COUNT(*) AS TenderCount FROM tenderTender "
        "WHERE (IsDeleted = 0 OR IsDeleted IS NULL) GROUP BY Type ORDER BY TenderCount DESC",
    ),
    (
        "Tenders added by Sarah",
        "SELECT t.ProjectName, t.Value, t.Status, t.Type, t.OpenDate, e.Name AS AddedBy "
        "FROM tenderTender t JOIN tenderEmployee e ON t.AddBy = e.UserID "
        "WHERE (t.IsDeleted = 0 OR t.IsDeleted IS NULL) AND e.Name LIKE '%Sarah%' "
        "ORDER BY t.CreatedAt DESC",
    ),
]


def static_snapshot() -> SchemaSnapshot:
    """Snapshot equivalent of the static schema, without sample rows."""
    return SchemaSnapshot(
        tables=[
            TableDescriptor(
                name=name,
                columns=[ColumnDescriptor(name=col, logical_type="unknown") for col in cols],
            )
            for name, cols in STATIC_TABLES.items()
        ]
    )
