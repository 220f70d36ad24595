# The name of the project
PROJECT_NAME = "glrunner"

# The config file looked up when none is given on the command line
DEFAULT_CONFIG_FILE = "glrunner.yaml"

# The region the AWS session is scoped to
DEFAULT_REGION = "eu-west-1"

# IAM role and policy created for the runner
DEFAULT_ROLE_NAME = "GitLabRunnerRole"
DEFAULT_POLICY_NAME = "GitLabRunnerRolePolicy"
DEFAULT_POLICY_DESCRIPTION = "GitLab Runner role policy"

# The principal trusted to assume the runner role
EKS_SERVICE_PRINCIPAL = "eks.amazonaws.com"

# The Kubernetes service account bound to the runner role
DEFAULT_SERVICE_ACCOUNT_NAME = "gitlab-runner"

# The annotation that binds a service account to an IAM role (IRSA)
ROLE_ARN_ANNOTATION = "eks.amazonaws.com/role-arn"

# Helm chart of the runner
DEFAULT_CHART_REPO_NAME = "gitlab"
DEFAULT_CHART_REPO_URL = "https://charts.gitlab.io"
DEFAULT_CHART_NAME = "gitlab-runner"
DEFAULT_CHART_VERSION = "0.1.0"
DEFAULT_RELEASE_NAME = "gitlab-runner"
DEFAULT_RELEASE_NAMESPACE = "gitlab-runner"
DEFAULT_VALUES_FILE = "values.yaml"

# Timeouts in seconds
DEFAULT_COMMAND_TIMEOUT = 300
DEFAULT_AWS_TIMEOUT = 60
