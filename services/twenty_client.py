"""
Twenty CRM API Client

Twenty exposes a single GraphQL endpoint at {api_url}/graphql. Every call is a
POST of {query, variables} with the workspace API key as a Bearer token.
Attachments additionally use the GraphQL multipart upload convention.
"""

import json
import logging

import requests

from services.lead_transform import blocknote_body, normalize_lead_node, task_body_v2

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds


class TwentyAPIError(Exception):
    """Raised when Twenty CRM returns a non-2xx response or GraphQL errors"""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


# Field selection for a full lead record
LEAD_DETAIL_FIELDS = """
    id
    name
    email {
      primaryEmail
      additionalEmails
    }
    phone {
      primaryPhoneNumber
      additionalPhones
    }
    city
    adress
    zipCode
    status
    source
    medium
    salesRep
    canvasser
    projectManager
    estValue {
      amountMicros
      currencyCode
    }
    notes
    aiSummary
    appointmentTime
    rawUtmSource
    utmMedium
    utmCampaign
    utmContent
    utmTerm
    gclid
    fbclid
    wbraid
    callPage {
      primaryLinkUrl
      primaryLinkLabel
      secondaryLinks
    }
    createdAt
    updatedAt
    deletedAt
    createdBy {
      source
      workspaceMemberId
      name
    }
    position
"""

# Field selection used by dashboard lists and team views
LEAD_LIST_FIELDS = """
    id
    name
    email {
      primaryEmail
    }
    phone {
      primaryPhoneNumber
    }
    city
    adress
    zipCode
    status
    source
    medium
    salesRep
    canvasser
    projectManager
    appointmentTime
    createdAt
    updatedAt
"""

TASK_FIELDS = """
    id
    title
    bodyV2 {
      markdown
    }
    status
    dueAt
    createdAt
    updatedAt
    assignee {
      id
      name {
        firstName
        lastName
      }
    }
"""

ATTACHMENT_FIELDS = """
    id
    name
    fullPath
    type
    createdAt
    updatedAt
"""

# Lead fields whose GraphQL type is an enum the dashboard offers as options
LEAD_ENUM_FIELDS = ('status', 'source', 'medium', 'salesRep', 'canvasser', 'demo')


def _edges(data, key):
    """Unwrap a Relay-style connection into its nodes"""
    connection = (data or {}).get(key) or {}
    return [edge.get('node') for edge in connection.get('edges') or [] if edge.get('node')]


def _note_to_dict(note):
    return {
        'id': note['id'],
        'title': note.get('title') or '',
        'body': (note.get('bodyV2') or {}).get('markdown') or '',
        'createdAt': note.get('createdAt'),
        'updatedAt': note.get('updatedAt'),
        'createdBy': None,
    }


def _task_to_dict(task):
    result = dict(task)
    result['body'] = (task.get('bodyV2') or {}).get('markdown') or None
    return result


class TwentyClient:
    """Thin wrapper around one Twenty CRM workspace"""

    def __init__(self, api_url, api_key, timeout=DEFAULT_TIMEOUT, session=None):
        self.api_url = (api_url or '').rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def graphql_url(self):
        return f"{self.api_url}/graphql"

    def _headers(self, json_body=True):
        headers = {'Authorization': f'Bearer {self.api_key}'}
        if json_body:
            headers['Content-Type'] = 'application/json'
        return headers

    def _handle_response(self, response):
        if not response.ok:
            raise TwentyAPIError(
                f"Twenty CRM API error ({response.status_code}): {response.text}",
                status_code=response.status_code
            )

        try:
            result = response.json()
        except ValueError:
            raise TwentyAPIError("Twenty CRM returned a non-JSON response", status_code=response.status_code)

        if result.get('errors'):
            raise TwentyAPIError(f"GraphQL errors: {json.dumps(result['errors'])}")

        return result.get('data') or {}

    def request(self, query, variables=None):
        """
        Execute a GraphQL query or mutation

        Returns:
            The `data` member of the GraphQL response

        Raises:
            TwentyAPIError: On HTTP failure or GraphQL errors
        """
        try:
            response = self.session.post(
                self.graphql_url,
                headers=self._headers(),
                json={'query': query, 'variables': variables or {}},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Twenty CRM request failed: {e}")
            raise TwentyAPIError(f"Twenty CRM request failed: {e}")

        return self._handle_response(response)

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    def get_leads(self, limit=100):
        """Fetch leads in the compact shape used by sync"""
        query = """
            query GetLeads($limit: Int) {
              leads(first: $limit) {
                edges {
                  node {
                    id
                    name
                    email {
                      primaryEmail
                    }
                    phone {
                      primaryPhoneNumber
                    }
                    city
                    createdAt
                    updatedAt
                  }
                }
              }
            }
        """
        data = self.request(query, {'limit': limit})
        return [normalize_lead_node(node) for node in _edges(data, 'leads')]

    def get_leads_full(self, limit=500):
        """Fetch leads with the dashboard field set, as returned by the CRM"""
        query = f"""
            query GetLeadsFull($limit: Int) {{
              leads(first: $limit, orderBy: {{ updatedAt: DescNullsLast }}) {{
                edges {{
                  node {{
                    {LEAD_LIST_FIELDS}
                  }}
                }}
              }}
            }}
        """
        data = self.request(query, {'limit': limit})
        return _edges(data, 'leads')

    def get_lead(self, lead_id):
        """Fetch one lead with every field. Returns None if not found."""
        query = f"""
            query GetLead($leadId: UUID!) {{
              lead(filter: {{ id: {{ eq: $leadId }} }}) {{
                {LEAD_DETAIL_FIELDS}
              }}
            }}
        """
        data = self.request(query, {'leadId': lead_id})
        return data.get('lead')

    def update_lead(self, lead_id, data):
        """Apply an already-transformed LeadUpdateInput"""
        mutation = """
            mutation UpdateLead($id: UUID!, $data: LeadUpdateInput!) {
              updateLead(id: $id, data: $data) {
                id
                name
                email {
                  primaryEmail
                }
                phone {
                  primaryPhoneNumber
                }
                city
                salesRep
                canvasser
                updatedAt
              }
            }
        """
        result = self.request(mutation, {'id': lead_id, 'data': data})
        return result.get('updateLead')

    # ------------------------------------------------------------------
    # Enums
    # ------------------------------------------------------------------

    def get_enum_values(self, enum_name):
        """List the value names of a GraphQL enum type, e.g. LeadSalesRepEnum"""
        query = """
            query GetEnumValues($name: String!) {
              __type(name: $name) {
                name
                enumValues {
                  name
                }
              }
            }
        """
        data = self.request(query, {'name': enum_name})
        enum_type = data.get('__type') or {}
        return [value['name'] for value in enum_type.get('enumValues') or []]

    def get_lead_field_enums(self):
        """
        Introspect the Lead type

        Returns:
            Dict of field name to list of enum value names, for LEAD_ENUM_FIELDS
        """
        query = """
            query GetLeadEnums {
              __type(name: "Lead") {
                name
                fields {
                  name
                  type {
                    name
                    kind
                    enumValues {
                      name
                    }
                  }
                }
              }
            }
        """
        data = self.request(query)
        fields = (data.get('__type') or {}).get('fields') or []

        enums = {name: [] for name in LEAD_ENUM_FIELDS}
        for field in fields:
            enum_values = (field.get('type') or {}).get('enumValues')
            if field.get('name') in enums and enum_values:
                enums[field['name']] = [value['name'] for value in enum_values]
        return enums

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def get_notes_for_lead(self, lead_id):
        query = """
            query GetNotesForLead($leadId: UUID!) {
              noteTargets(filter: { leadId: { eq: $leadId } }) {
                edges {
                  node {
                    id
                    note {
                      id
                      title
                      bodyV2 {
                        markdown
                        blocknote
                      }
                      createdAt
                      updatedAt
                    }
                  }
                }
              }
            }
        """
        data = self.request(query, {'leadId': lead_id})
        return [
            _note_to_dict(target['note'])
            for target in _edges(data, 'noteTargets')
            if target.get('note')
        ]

    def create_note_for_lead(self, lead_id, title, body):
        """
        Create a note and link it to a lead

        The note is returned even if linking fails; the failure is logged.
        """
        mutation = """
            mutation CreateNote($title: String, $bodyV2: RichTextV2CreateInput!) {
              createNote(data: { title: $title, bodyV2: $bodyV2 }) {
                id
                title
                bodyV2 {
                  markdown
                  blocknote
                }
                createdAt
                updatedAt
              }
            }
        """
        data = self.request(mutation, {
            'title': title or 'Note',
            'bodyV2': {'blocknote': blocknote_body(body), 'markdown': None},
        })
        note = data.get('createNote')
        if not note:
            return None

        link_mutation = """
            mutation CreateNoteTarget($noteId: UUID!, $leadId: UUID!) {
              createNoteTarget(data: { noteId: $noteId, leadId: $leadId }) {
                id
              }
            }
        """
        try:
            self.request(link_mutation, {'noteId': note['id'], 'leadId': lead_id})
        except TwentyAPIError as e:
            logger.error(f"Note {note['id']} created but linking to lead {lead_id} failed: {e}")

        return _note_to_dict(note)

    def update_note(self, note_id, title=None, body=None):
        data = {}
        if title is not None:
            data['title'] = title
        if body is not None:
            data['bodyV2'] = {'blocknote': blocknote_body(body), 'markdown': None}

        mutation = """
            mutation UpdateNote($id: UUID!, $data: NoteUpdateInput!) {
              updateNote(id: $id, data: $data) {
                id
                title
                bodyV2 {
                  markdown
                  blocknote
                }
                createdAt
                updatedAt
              }
            }
        """
        result = self.request(mutation, {'id': note_id, 'data': data})
        note = result.get('updateNote')
        return _note_to_dict(note) if note else None

    def delete_note(self, note_id):
        mutation = """
            mutation DeleteNote($id: UUID!) {
              deleteNote(id: $id) {
                id
              }
            }
        """
        result = self.request(mutation, {'id': note_id})
        return (result.get('deleteNote') or {}).get('id')

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def get_tasks_for_lead(self, lead_id):
        query = f"""
            query GetTasksForLead($leadId: UUID!) {{
              taskTargets(filter: {{ leadId: {{ eq: $leadId }} }}, orderBy: {{ createdAt: DescNullsLast }}) {{
                edges {{
                  node {{
                    id
                    task {{
                      {TASK_FIELDS}
                      createdBy {{
                        source
                        name
                      }}
                    }}
                  }}
                }}
              }}
            }}
        """
        data = self.request(query, {'leadId': lead_id})
        return [
            _task_to_dict(target['task'])
            for target in _edges(data, 'taskTargets')
            if target.get('task')
        ]

    def get_all_tasks(self):
        """
        Every task target with its task and lead

        Returns:
            List of task dicts carrying leadId, leadName, leadSalesRep,
            leadProjectManager, leadAddress and leadCity
        """
        query = f"""
            query GetAllTasks {{
              taskTargets(orderBy: {{ createdAt: DescNullsLast }}) {{
                edges {{
                  node {{
                    id
                    task {{
                      {TASK_FIELDS}
                      install
                      pmTask
                    }}
                    lead {{
                      id
                      name
                      salesRep
                      projectManager
                      adress
                      city
                    }}
                  }}
                }}
              }}
            }}
        """
        data = self.request(query)

        tasks = []
        for target in _edges(data, 'taskTargets'):
            # Orphaned targets have no task
            if not target.get('task'):
                continue
            lead = target.get('lead') or {}
            task = _task_to_dict(target['task'])
            task.update({
                'leadId': lead.get('id'),
                'leadName': lead.get('name'),
                'leadSalesRep': lead.get('salesRep'),
                'leadProjectManager': lead.get('projectManager'),
                'leadAddress': lead.get('adress'),
                'leadCity': lead.get('city'),
            })
            tasks.append(task)
        return tasks

    def create_task(self, lead_id, title, body=None, status=None, due_at=None):
        """Create a task and link it to a lead"""
        task_data = {'title': title}
        if body:
            task_data['bodyV2'] = task_body_v2(body)
        if status:
            task_data['status'] = status
        if due_at:
            task_data['dueAt'] = due_at

        mutation = """
            mutation CreateTask($taskData: TaskCreateInput!) {
              createTask(data: $taskData) {
                id
                title
                bodyV2 {
                  markdown
                }
                status
                dueAt
                createdAt
                updatedAt
              }
            }
        """
        data = self.request(mutation, {'taskData': task_data})
        task = data.get('createTask')
        if not task:
            raise TwentyAPIError("Twenty CRM did not return the created task")

        target_mutation = """
            mutation CreateTaskTarget($data: TaskTargetCreateInput!) {
              createTaskTarget(data: $data) {
                id
                taskId
                leadId
              }
            }
        """
        self.request(target_mutation, {'data': {'taskId': task['id'], 'leadId': lead_id}})

        return _task_to_dict(task)

    def update_task(self, task_id, updates):
        data = dict(updates)
        if 'body' in data:
            data['bodyV2'] = task_body_v2(data.pop('body') or '')

        mutation = """
            mutation UpdateTask($taskId: UUID!, $data: TaskUpdateInput!) {
              updateTask(id: $taskId, data: $data) {
                id
                title
                bodyV2 {
                  markdown
                }
                status
                dueAt
                updatedAt
              }
            }
        """
        result = self.request(mutation, {'taskId': task_id, 'data': data})
        task = result.get('updateTask')
        return _task_to_dict(task) if task else None

    def delete_task(self, task_id):
        mutation = """
            mutation DeleteTask($taskId: UUID!) {
              deleteTask(id: $taskId) {
                id
              }
            }
        """
        result = self.request(mutation, {'taskId': task_id})
        return (result.get('deleteTask') or {}).get('id')

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def get_attachments(self, lead_id):
        query = f"""
            query GetAttachments($leadId: UUID!) {{
              attachments(filter: {{ leadId: {{ eq: $leadId }} }}) {{
                edges {{
                  node {{
                    {ATTACHMENT_FIELDS}
                  }}
                }}
              }}
            }}
        """
        data = self.request(query, {'leadId': lead_id})
        return _edges(data, 'attachments')

    def upload_file(self, filename, content, content_type):
        """
        Upload file bytes using the GraphQL multipart request convention

        Returns:
            Storage path assigned by Twenty
        """
        operations = {
            'query': """
                mutation UploadFile($file: Upload!, $fileFolder: FileFolder) {
                  uploadFile(file: $file, fileFolder: $fileFolder) {
                    path
                    token
                  }
                }
            """,
            'variables': {'file': None, 'fileFolder': 'Attachment'},
        }
        form = {
            'operations': json.dumps(operations),
            'map': json.dumps({'0': ['variables.file']}),
        }
        files = {'0': (filename, content, content_type or 'application/octet-stream')}

        try:
            response = self.session.post(
                self.graphql_url,
                headers=self._headers(json_body=False),
                data=form,
                files=files,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Twenty CRM upload failed: {e}")
            raise TwentyAPIError(f"Twenty CRM upload failed: {e}")

        data = self._handle_response(response)
        path = (data.get('uploadFile') or {}).get('path')
        if not path:
            raise TwentyAPIError("Twenty CRM did not return an upload path")
        return path

    def upload_attachment(self, lead_id, filename, content, content_type):
        """
        Create an attachment record, upload its bytes, then point it at the file
        """
        create_mutation = f"""
            mutation CreateAttachment($leadId: UUID!, $fileName: String!, $mimeType: String!) {{
              createAttachment(data: {{ name: $fileName, type: $mimeType, leadId: $leadId }}) {{
                {ATTACHMENT_FIELDS}
              }}
            }}
        """
        created = self.request(create_mutation, {
            'leadId': lead_id,
            'fileName': filename,
            'mimeType': content_type or 'application/octet-stream',
        }).get('createAttachment')
        if not created:
            raise TwentyAPIError("Twenty CRM did not return the created attachment")

        path = self.upload_file(filename, content, content_type)

        update_mutation = f"""
            mutation UpdateAttachment($id: UUID!, $fullPath: String!) {{
              updateAttachment(id: $id, data: {{ fullPath: $fullPath }}) {{
                {ATTACHMENT_FIELDS}
              }}
            }}
        """
        updated = self.request(update_mutation, {'id': created['id'], 'fullPath': path})
        return updated.get('updateAttachment') or created

    def delete_attachment(self, attachment_id):
        mutation = """
            mutation DeleteAttachment($id: UUID!) {
              deleteAttachment(id: $id) {
                id
              }
            }
        """
        result = self.request(mutation, {'id': attachment_id})
        return (result.get('deleteAttachment') or {}).get('id')
