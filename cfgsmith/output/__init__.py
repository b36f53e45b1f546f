# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Output writing for cfgsmith.

Public API:

- write_outputs: Validate and write rendered files (or report a dry run)
- add_banner: Prefix the auto-generated marker for a file type
- compare_with_existing: Diff generated content against a file on disk
"""

from .writer import AUTO_GEN_COMMENT, add_banner, compare_with_existing, write_outputs

__all__ = ["AUTO_GEN_COMMENT", "add_banner", "compare_with_existing", "write_outputs"]
