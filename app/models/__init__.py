from app.models.tenant import Tenant, TenantPlan, TenantStatus
from app.models.company import Company, CompanyPlan
from app.models.role import Role
from app.models.user import User
from app.models.client import Client, ClientStatus
from app.models.lead import Lead, LeadStatus, LeadPriority, LeadSource
from app.models.note import ClientNote, LeadNote, LeadActivity, ActivityType, ActivityStatus
