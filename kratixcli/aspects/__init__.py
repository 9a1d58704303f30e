"""Pipeline aspects that turn a resource request into an operator, Crossplane claim or Terraform module object."""