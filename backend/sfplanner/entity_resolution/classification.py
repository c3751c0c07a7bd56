"""
Object Classification Rules

Two predicates over an object's canonical name:

- is_forbidden: administrative / audit / process infrastructure that must
  never surface as a match, a traversal target, or a query object.
- is_system_object: platform objects that are rarely business relevant.
  Excluded from the catalog by default, but callers may opt in.

Each classifier is an ordered list of rules (exact denylist first, then
patterns in a fixed order). The lists are data: tests pin them down and
changes to them should be reviewed like schema changes.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern

CUSTOM_SUFFIX = "__c"


@dataclass(frozen=True)
class ClassificationRule:
    """A single exact-name or regex rule"""
    kind: str  # exact, pattern
    value: str
    description: str = ""
    _compiled: Optional[Pattern] = field(default=None, compare=False, repr=False)
    
    @classmethod
    def exact(cls, value: str, description: str = "") -> "ClassificationRule":
        return cls("exact", value, description)
    
    @classmethod
    def pattern(cls, value: str, description: str = "") -> "ClassificationRule":
        return cls("pattern", value, description, re.compile(value, re.IGNORECASE))
    
    def matches(self, name: str) -> bool:
        if self.kind == "exact":
            return name == self.value
        return bool(self._compiled.search(name))


def _exact_rules(names: List[str], description: str) -> List[ClassificationRule]:
    return [ClassificationRule.exact(n, description) for n in names]


FORBIDDEN_OBJECTS = [
    'FlowOrchestrationWorkItem',
    'ProcessInstance',
    'ProcessInstanceHistory',
    'ProcessInstanceStep',
    'ProcessInstanceWorkitem',
    'WorkflowAlert',
    'WorkflowEmailRecipient',
    'WorkflowFieldUpdate',
    'WorkflowKnowledgePublish',
    'WorkflowOutboundMessage',
    'WorkflowRule',
    'WorkflowTask',
    'UserRecordAccess',
    'ObjectPermissions',
    'FieldPermissions',
    'SetupEntityAccess',
    'AsyncApexJob',
    'ApexTestQueueItem',
    'ApexTestResult',
    'ApexTestRunResult',
    'SearchActivity',
    'RecentlyViewed',
    'LoginHistory',
    'EventLogFile',
    'DuplicateRecordItem',
    'DuplicateRecordSet',
    'EntitySubscription',
    'FeedItem',
    'FeedComment',
    'UserFeed',
    'NewsFeed',
    'UserDefinedLabelAssignment',
    'UserDefinedLabel',
    'ValidationRule',
    'RecordType',
    'BusinessProcess',
    'PicklistValueInfo',
    'StandardValueSet',
    'GlobalValueSet',
]

FORBIDDEN_RULES: List[ClassificationRule] = _exact_rules(
    FORBIDDEN_OBJECTS, "process/permission/audit infrastructure"
) + [
    ClassificationRule.pattern(r'^FlowOrchestration', "flow orchestration"),
    ClassificationRule.pattern(r'^ProcessInstance', "approval process"),
    ClassificationRule.pattern(r'^Workflow', "workflow metadata"),
    ClassificationRule.pattern(r'WorkItem$', "work items"),
    ClassificationRule.pattern(r'^UserDefined', "user defined labels"),
    ClassificationRule.pattern(r'^Metadata', "metadata objects"),
    ClassificationRule.pattern(r'^Setup', "setup objects"),
    ClassificationRule.pattern(r'(Assignment|Rule|Process|Alert)$', "automation suffixes"),
]


SYSTEM_OBJECTS = [
    'EntitySubscription', 'FeedItem', 'FeedComment', 'UserFeed', 'NewsFeed',
    'DuplicateRecordItem', 'DuplicateRecordSet', 'RecordAction', 'RecordType',
    'BusinessHours', 'Holiday', 'Territory', 'FiscalYearSettings',
    'CurrencyType', 'Category', 'CategoryNode', 'CategoryData',
    'FlowOrchestrationWorkItem', 'ProcessException', 'AssignmentRule',
    'Queue', 'Group', 'GroupMember', 'QueueSobject',
    'ActivityHistory', 'OpenActivity', 'CombinedAttachment', 'NoteAndAttachment',
    'AttachedContentDocument', 'AttachedContentNote',
    'SearchActivity', 'RecentlyViewed', 'OwnedItemHistory',
]

SYSTEM_RULES: List[ClassificationRule] = _exact_rules(
    SYSTEM_OBJECTS, "common system objects"
) + [
    ClassificationRule.pattern(r'__(Share|History|Feed|Tag)$', "sharing/history/feed of custom objects"),
    ClassificationRule.pattern(r'^(Flow|Process|WorkItem|Orchestration)', "flow and process"),
    ClassificationRule.pattern(r'FlowOrchestration|ProcessInstance|WorkflowRule', "flow and process"),
    ClassificationRule.pattern(r'^(Platform|Setup|Lightning|Component|Custom|Static|Dynamic)', "platform"),
    ClassificationRule.pattern(r'(Permission|UserRole|Profile|UserLicense|Login|Session)', "security"),
    ClassificationRule.pattern(r'(ObjectPermissions|FieldPermissions|UserRecordAccess)', "security"),
    ClassificationRule.pattern(r'(Organization|Domain|Network|Site|Community)', "org administration"),
    ClassificationRule.pattern(r'(AsyncApex|ApexClass|ApexTrigger|ApexPage|ApexComponent)', "apex"),
    ClassificationRule.pattern(r'(ChangeEvent|ChangeTracking|DataChangeLog|AuditTrail)', "change tracking"),
    ClassificationRule.pattern(r'(ContentDocument|ContentVersion|ContentWorkspace|Document|Folder)', "content metadata"),
    ClassificationRule.pattern(r'^(Attached|Combined|Collaboration)', "content metadata"),
    ClassificationRule.pattern(r'(CallCenter|EmailTemplate|MailmergeTemplate|WebLink|Dashboard)', "integration"),
]

# Custom objects are business objects unless named like configuration
CUSTOM_OBJECT_RE = re.compile(r'^[a-zA-Z0-9_]+__c$')
CUSTOM_ADMIN_RE = re.compile(r'(System|Platform|Setup|Config|Settings|Admin)__c$', re.IGNORECASE)


def is_custom_name(name: Optional[str]) -> bool:
    return bool(name) and bool(CUSTOM_OBJECT_RE.match(name))


def is_forbidden(name: Optional[str]) -> bool:
    """Objects that must never be surfaced or traversed"""
    if not name:
        return False
    return any(rule.matches(name) for rule in FORBIDDEN_RULES)


def is_system_object(name: Optional[str]) -> bool:
    """Objects excluded from business queries unless explicitly requested"""
    if not name:
        return False
    if any(rule.matches(name) for rule in SYSTEM_RULES):
        return True
    if is_custom_name(name):
        return bool(CUSTOM_ADMIN_RE.search(name))
    return False


def matching_rule(name: str, rules: List[ClassificationRule]) -> Optional[ClassificationRule]:
    """First rule that matches, for diagnostics"""
    for rule in rules:
        if rule.matches(name):
            return rule
    return None
